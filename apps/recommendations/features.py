"""
Feature extraction for content items.

Turns a ContentItem (plus its course and the progress learners made on it)
into the attributes stored on ContentFeatures.
"""

import logging
import re

from django.utils import timezone

from .models import SkillLevel

logger = logging.getLogger(__name__)

# ContentItem.ContentType -> the coarse type learners pick in their preferences
CONTENT_TYPE_LABELS = {
    "TEXT": "text",
    "DOCUMENT": "text",
    "VIDEO": "video",
    "AUDIO": "audio",
    "INTERACTIVE": "interactive",
    "QUIZ": "interactive",
}

MULTIMEDIA_RICHNESS = {"video": 0.9, "interactive": 0.8, "audio": 0.5}
INTERACTIVITY = {"interactive": 0.9, "video": 0.4, "audio": 0.3}
PRACTICAL_TYPES = {"INTERACTIVE", "QUIZ"}

DEFAULT_DURATION_MINUTES = 30
MAX_TOPICS = 10
MIN_TOPIC_LENGTH = 5  # words of 4 letters or fewer are too generic to be topics

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9+#-]*")


def content_type_label(content_type) -> str:
    return CONTENT_TYPE_LABELS.get(str(content_type).upper(), str(content_type).lower())


def extract_topics(*texts) -> list[str]:
    """Distinct words of at least five characters, in order of appearance."""
    topics = []
    for text in texts:
        for word in _WORD_RE.findall((text or "").lower()):
            if len(word) >= MIN_TOPIC_LENGTH and word not in topics:
                topics.append(word)
                if len(topics) == MAX_TOPICS:
                    return topics
    return topics


class ContentFeatureExtractor:
    def extract(self, content_item, progress_records=None) -> dict:
        """Field values for the item's ContentFeatures row."""
        course = content_item.module.course
        label = content_type_label(content_item.content_type)
        duration = content_item.duration_minutes or DEFAULT_DURATION_MINUTES

        difficulty = course.difficulty_level or SkillLevel.INTERMEDIATE
        if difficulty not in SkillLevel.values:
            difficulty = SkillLevel.INTERMEDIATE

        metadata = content_item.metadata or {}
        return {
            "topics": extract_topics(content_item.title, content_item.text_content, course.title),
            "skills": list(dict.fromkeys(course.tags or [])),
            "categories": [label] + ([course.category] if course.category else []),
            "difficulty_level": difficulty,
            "prerequisites": list(metadata.get("prerequisites", [])),
            "learning_objectives": list(metadata.get("learning_objectives", [])),
            "content_characteristics": {
                "content_type": label,
                "duration_minutes": duration,
                "interactivity_level": INTERACTIVITY.get(label, 0.2),
                "multimedia_richness": MULTIMEDIA_RICHNESS.get(label, 0.3),
                "practical_exercises": content_item.content_type in PRACTICAL_TYPES,
                "assessments_included": content_item.content_type == "QUIZ",
            },
            "engagement_metrics": self.engagement_metrics(progress_records or []),
            "last_analyzed_at": timezone.now(),
        }

    @staticmethod
    def engagement_metrics(progress_records) -> dict:
        if not progress_records:
            return {"learner_count": 0, "completion_rate": 0.0, "average_progress": 0.0}
        completed = sum(1 for record in progress_records if record.is_completed)
        average = sum(record.completion_percentage for record in progress_records) / len(progress_records)
        return {
            "learner_count": len(progress_records),
            "completion_rate": round(completed / len(progress_records), 4),
            "average_progress": round(average / 100.0, 4),
        }

    @staticmethod
    def vectorize(features) -> dict:
        """Sparse one-hot description of a ContentFeatures row for similarity search."""
        vector = {}
        for prefix, values in (
            ("topic", features.topics),
            ("skill", features.skills),
            ("category", features.categories),
        ):
            for value in values or []:
                vector[f"{prefix}_{str(value).lower()}"] = 1.0
        vector[f"difficulty_{features.difficulty_level}"] = 1.0
        if features.content_type:
            vector[f"type_{features.content_type}"] = 1.0
        return vector
