"""
Scoring primitives shared by the recommendation strategies.

Everything here is pure: functions take plain values (or model instances
that are only read) and never touch the database.
"""

from .models import LearningStyle, SkillLevel

DIFFICULTY_ORDER = {
    SkillLevel.BEGINNER: 1,
    SkillLevel.INTERMEDIATE: 2,
    SkillLevel.ADVANCED: 3,
    SkillLevel.EXPERT: 4,
}

CONTENT_MATCH_WEIGHTS = {
    "topic": 0.3,
    "skill": 0.25,
    "difficulty": 0.2,
    "content_type": 0.15,
    "learning_style": 0.1,
}

CONTENT_BASED_THRESHOLD = 0.3

COMPLETENESS_WEIGHTS = {
    "topics": 0.2,
    "skill_levels": 0.2,
    "content_types": 0.15,
    "learning_behavior": 0.15,
    "career_path": 0.3,
}


def _normalized_set(values):
    return {str(value).strip().lower() for value in values or [] if str(value).strip()}


def jaccard_similarity(left, right) -> float:
    """Case-insensitive |A ∩ B| / |A ∪ B|; 0.0 when either side is empty."""
    left_set = _normalized_set(left)
    right_set = _normalized_set(right)
    if not left_set or not right_set:
        return 0.0
    return len(left_set & right_set) / len(left_set | right_set)


def difficulty_rank(level) -> int:
    """Ordinal position of a difficulty level; unknown levels count as intermediate."""
    try:
        return DIFFICULTY_ORDER[SkillLevel(str(level).lower())]
    except ValueError:
        return DIFFICULTY_ORDER[SkillLevel.INTERMEDIATE]


def difficulty_match(content_level, user_level) -> float:
    distance = abs(difficulty_rank(content_level) - difficulty_rank(user_level))
    return max(0.0, 1.0 - distance / 3)


def content_type_match(content_type, preferred_types) -> float:
    if not content_type:
        return 0.0
    return 1.0 if str(content_type).lower() in _normalized_set(preferred_types) else 0.0


def learning_style_alignment(characteristics, learning_style) -> float:
    characteristics = characteristics or {}
    content_type = str(characteristics.get("content_type") or "").lower()

    if learning_style == LearningStyle.VISUAL:
        return characteristics.get("multimedia_richness") or 0.5
    if learning_style == LearningStyle.AUDITORY:
        return 1.0 if content_type == "audio" else 0.3
    if learning_style == LearningStyle.READING:
        return 1.0 if content_type == "text" else 0.4
    if learning_style == LearningStyle.KINESTHETIC:
        return 1.0 if characteristics.get("practical_exercises") else 0.2
    if learning_style == LearningStyle.MIXED:
        return 0.7
    return 0.5


def content_profile_similarity(features, profile):
    """
    Weighted match between a ContentFeatures row and a UserLearningProfile.

    Returns ``(score, factors)`` where ``factors`` holds each sub-signal so
    callers can explain the recommendation.
    """
    interests = profile.interests or {}
    preferences = profile.preferences or {}
    characteristics = features.content_characteristics or {}

    factors = {
        "topic": jaccard_similarity(features.topics, interests.get("topics")),
        "skill": jaccard_similarity(features.skills, (profile.skill_levels or {}).keys()),
        "difficulty": difficulty_match(
            features.difficulty_level, preferences.get("difficulty_preference")
        ),
        "content_type": content_type_match(
            characteristics.get("content_type"), preferences.get("content_types")
        ),
        "learning_style": learning_style_alignment(characteristics, profile.learning_style),
    }

    total_weight = sum(CONTENT_MATCH_WEIGHTS.values())
    score = sum(factors[name] * weight for name, weight in CONTENT_MATCH_WEIGHTS.items())
    return score / total_weight, factors


def profile_completeness(interests, skill_levels, preferences, learning_behavior, career_path) -> float:
    """
    Share of the profile that is filled in, from fixed per-section weights.
    Adding a section never lowers the result and it never exceeds 1.0.
    """
    score = 0.0
    if (interests or {}).get("topics"):
        score += COMPLETENESS_WEIGHTS["topics"]
    if skill_levels:
        score += COMPLETENESS_WEIGHTS["skill_levels"]
    if (preferences or {}).get("content_types"):
        score += COMPLETENESS_WEIGHTS["content_types"]
    if (learning_behavior or {}).get("session_patterns"):
        score += COMPLETENESS_WEIGHTS["learning_behavior"]
    if career_path:
        score += COMPLETENESS_WEIGHTS["career_path"]
    return round(min(max(score, 0.0), 1.0), 2)


def skill_gaps(required_skills, possessed_skills) -> list[str]:
    """Required skills (in their given order) that are not among the possessed ones."""
    possessed = _normalized_set(possessed_skills)
    gaps = []
    for skill in required_skills or []:
        if str(skill).strip().lower() not in possessed and skill not in gaps:
            gaps.append(skill)
    return gaps
