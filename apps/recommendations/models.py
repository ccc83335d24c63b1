from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.common.models import TimestampedModel
from apps.core.models import Tenant
from apps.courses.models import ContentItem, Course
from apps.users.models import User


class RecommendationType(models.TextChoices):
    CONTENT_BASED = "content_based", _("Content Based")
    COLLABORATIVE = "collaborative", _("Collaborative")
    HYBRID = "hybrid", _("Hybrid")
    TRENDING = "trending", _("Trending")
    CAREER_PATH = "career_path", _("Career Path")
    SKILL_GAP = "skill_gap", _("Skill Gap")
    CONTEXTUAL = "contextual", _("Contextual")


class RecommendationStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    CLICKED = "clicked", _("Clicked")
    ENROLLED = "enrolled", _("Enrolled")
    DISMISSED = "dismissed", _("Dismissed")
    EXPIRED = "expired", _("Expired")


class LearningStyle(models.TextChoices):
    VISUAL = "visual", _("Visual")
    AUDITORY = "auditory", _("Auditory")
    READING = "reading", _("Reading")
    KINESTHETIC = "kinesthetic", _("Kinesthetic")
    MIXED = "mixed", _("Mixed")


class SkillLevel(models.TextChoices):
    BEGINNER = "beginner", _("Beginner")
    INTERMEDIATE = "intermediate", _("Intermediate")
    ADVANCED = "advanced", _("Advanced")
    EXPERT = "expert", _("Expert")


class InteractionType(models.TextChoices):
    VIEW = "view", _("View")
    CLICK = "click", _("Click")
    ENROLL = "enroll", _("Enroll")
    DISMISS = "dismiss", _("Dismiss")
    RATE = "rate", _("Rate")
    SHARE = "share", _("Share")


def default_interests():
    return {"topics": [], "categories": [], "skills": [], "career_goals": []}


def default_preferences():
    return {
        "content_types": ["video", "text"],
        "duration_preference": "medium",
        "difficulty_preference": SkillLevel.INTERMEDIATE.value,
        "language": "en",
        "available_hours": 5,
    }


def default_learning_behavior():
    return {
        "session_patterns": {
            "preferred_times": [],
            "average_session_minutes": 30,
            "sessions_per_week": 3,
        },
        "completion_rate": 0.0,
        "engagement_score": 0.0,
    }


class UserLearningProfile(TimestampedModel):
    """
    What the recommender knows about a learner inside one organization.

    Created lazily from the learner's history the first time recommendations
    are requested, then edited by the learner and refreshed on a schedule.
    """

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="learning_profiles"
    )
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="learning_profiles"
    )
    interests = models.JSONField(default=default_interests, blank=True)
    skill_levels = models.JSONField(
        default=dict,
        blank=True,
        help_text="skill -> {level, confidence, evidence_count}",
    )
    learning_style = models.CharField(
        max_length=20, choices=LearningStyle.choices, default=LearningStyle.MIXED
    )
    preferences = models.JSONField(default=default_preferences, blank=True)
    learning_behavior = models.JSONField(default=default_learning_behavior, blank=True)
    career_path = models.JSONField(
        null=True,
        blank=True,
        help_text="{current_role, target_role, required_skills, skill_gaps, timeline}",
    )
    profile_completeness = models.FloatField(
        default=0.0, validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    last_profiled_at = models.DateTimeField(null=True, blank=True, db_index=True)

    def __str__(self):
        return f"Learning profile for {self.user.email}"

    class Meta:
        unique_together = ("tenant", "user")
        ordering = ["-updated_at"]


class ContentFeatures(TimestampedModel):
    """Derived attributes of a content item used for matching and similarity."""

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="content_features"
    )
    content_item = models.OneToOneField(
        ContentItem, on_delete=models.CASCADE, related_name="features"
    )
    topics = models.JSONField(default=list, blank=True)
    skills = models.JSONField(default=list, blank=True)
    categories = models.JSONField(default=list, blank=True)
    difficulty_level = models.CharField(
        max_length=20, choices=SkillLevel.choices, default=SkillLevel.INTERMEDIATE
    )
    prerequisites = models.JSONField(default=list, blank=True)
    learning_objectives = models.JSONField(default=list, blank=True)
    content_characteristics = models.JSONField(
        default=dict,
        blank=True,
        help_text="content_type, duration_minutes, interactivity_level, multimedia_richness, ...",
    )
    engagement_metrics = models.JSONField(default=dict, blank=True)
    last_analyzed_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"Features of {self.content_item.title}"

    @property
    def content_type(self):
        return (self.content_characteristics or {}).get("content_type")

    @property
    def primary_topic(self):
        return self.topics[0] if self.topics else None

    class Meta:
        verbose_name_plural = "Content features"


class RecommendationModel(TimestampedModel):
    """A named, org-scoped strategy configuration that feeds the ensemble."""

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="recommendation_models"
    )
    name = models.CharField(max_length=255)
    model_type = models.CharField(max_length=20, choices=RecommendationType.choices)
    description = models.TextField(blank=True)
    configuration = models.JSONField(
        default=dict,
        blank=True,
        help_text="{algorithm, parameters, feature_weights, similarity_threshold, min_confidence}",
    )
    training_data = models.JSONField(default=dict, blank=True)
    performance = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=False, db_index=True)
    version = models.CharField(max_length=20, default="1.0.0")
    last_trained_at = models.DateTimeField(null=True, blank=True)
    next_training_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.name} ({self.get_model_type_display()})"

    class Meta:
        unique_together = ("tenant", "name")
        ordering = ["name"]


class UserRecommendation(TimestampedModel):
    """One recommendation shown to a learner."""

    ENSEMBLE_MODEL_KEY = "ensemble"

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="user_recommendations"
    )
    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="recommendations"
    )
    content_item = models.ForeignKey(
        ContentItem,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="recommendations",
    )
    course = models.ForeignKey(
        Course,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="recommendations",
    )
    model_key = models.CharField(max_length=100, default=ENSEMBLE_MODEL_KEY)
    recommendation_type = models.CharField(
        max_length=20, choices=RecommendationType.choices
    )
    source_strategies = models.JSONField(
        default=list, blank=True, help_text="Strategies that proposed this item"
    )
    confidence_score = models.FloatField(
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    relevance_score = models.FloatField(
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    reasoning = models.JSONField(
        default=dict, blank=True, help_text="{primary_factors, explanation}"
    )
    metadata = models.JSONField(default=dict, blank=True)
    status = models.CharField(
        max_length=20,
        choices=RecommendationStatus.choices,
        default=RecommendationStatus.ACTIVE,
        db_index=True,
    )
    impressions = models.PositiveIntegerField(default=0)
    viewed_at = models.DateTimeField(null=True, blank=True)
    clicked_at = models.DateTimeField(null=True, blank=True)
    enrolled_at = models.DateTimeField(null=True, blank=True)
    dismissed_at = models.DateTimeField(null=True, blank=True)
    user_feedback = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(db_index=True)

    def __str__(self):
        target = self.content_item or self.course
        return f"{self.get_recommendation_type_display()} for {self.user.email}: {target}"

    class Meta:
        ordering = ["-relevance_score", "-created_at"]
        indexes = [models.Index(fields=["user", "status"])]


class RecommendationInteraction(TimestampedModel):
    """Append-only log of what a learner did with a recommendation."""

    user = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="recommendation_interactions"
    )
    recommendation = models.ForeignKey(
        UserRecommendation, on_delete=models.CASCADE, related_name="interactions"
    )
    interaction_type = models.CharField(max_length=20, choices=InteractionType.choices)
    interaction_data = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    session_id = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return f"{self.interaction_type} by {self.user.email}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Recommendation interactions are immutable once recorded.")
        super().save(*args, **kwargs)


class ContentSimilarity(TimestampedModel):
    """
    Similarity between two content items. Stored in both directions with the
    same score so lookups only ever filter on ``content_item_1``.
    """

    content_item_1 = models.ForeignKey(
        ContentItem, on_delete=models.CASCADE, related_name="similarities_from"
    )
    content_item_2 = models.ForeignKey(
        ContentItem, on_delete=models.CASCADE, related_name="similarities_to"
    )
    similarity_score = models.FloatField(
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    similarity_factors = models.JSONField(default=dict, blank=True)
    algorithm_used = models.CharField(max_length=50, default="cosine")
    last_calculated_at = models.DateTimeField()

    class Meta:
        verbose_name_plural = "Content similarities"
        ordering = ["-similarity_score"]
        constraints = [
            models.UniqueConstraint(
                fields=["content_item_1", "content_item_2"], name="unique_content_pair"
            )
        ]


class UserSimilarity(TimestampedModel):
    """Similarity between two learners, stored in both directions like ContentSimilarity."""

    user_1 = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="similarities_from"
    )
    user_2 = models.ForeignKey(
        User, on_delete=models.CASCADE, related_name="similarities_to"
    )
    similarity_score = models.FloatField(
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    similarity_factors = models.JSONField(default=dict, blank=True)
    algorithm_used = models.CharField(max_length=50, default="cosine")
    last_calculated_at = models.DateTimeField()

    class Meta:
        verbose_name_plural = "User similarities"
        ordering = ["-similarity_score"]
        constraints = [
            models.UniqueConstraint(fields=["user_1", "user_2"], name="unique_user_pair")
        ]
