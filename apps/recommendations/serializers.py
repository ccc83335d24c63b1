from rest_framework import serializers

from .models import (
    ContentFeatures,
    ContentSimilarity,
    InteractionType,
    LearningStyle,
    RecommendationModel,
    RecommendationType,
    UserLearningProfile,
    UserRecommendation,
    UserSimilarity,
)


class UserLearningProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserLearningProfile
        fields = (
            "id",
            "user",
            "tenant",
            "interests",
            "skill_levels",
            "learning_style",
            "preferences",
            "learning_behavior",
            "career_path",
            "profile_completeness",
            "last_profiled_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.Serializer):
    """Partial profile update; each provided field replaces the stored one."""

    interests = serializers.DictField(required=False)
    skill_levels = serializers.DictField(required=False)
    learning_style = serializers.ChoiceField(choices=LearningStyle.choices, required=False)
    preferences = serializers.DictField(required=False)
    learning_behavior = serializers.DictField(required=False)
    career_path = serializers.DictField(required=False, allow_null=True)


class InterestsSerializer(serializers.Serializer):
    topics = serializers.ListField(child=serializers.CharField(), required=False)
    categories = serializers.ListField(child=serializers.CharField(), required=False)
    skills = serializers.ListField(child=serializers.CharField(), required=False)
    career_goals = serializers.ListField(child=serializers.CharField(), required=False)


class CareerPathSerializer(serializers.Serializer):
    current_role = serializers.CharField(required=False, allow_blank=True)
    target_role = serializers.CharField()
    required_skills = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    skill_gaps = serializers.ListField(child=serializers.CharField(), required=False)
    timeline = serializers.CharField(required=False, allow_blank=True)


class UserRecommendationSerializer(serializers.ModelSerializer):
    content_title = serializers.CharField(source="content_item.title", read_only=True, allow_null=True)
    course_title = serializers.CharField(source="course.title", read_only=True, allow_null=True)

    class Meta:
        model = UserRecommendation
        fields = (
            "id",
            "content_item",
            "content_title",
            "course",
            "course_title",
            "model_key",
            "recommendation_type",
            "source_strategies",
            "confidence_score",
            "relevance_score",
            "reasoning",
            "status",
            "impressions",
            "viewed_at",
            "clicked_at",
            "enrolled_at",
            "dismissed_at",
            "user_feedback",
            "expires_at",
            "created_at",
        )
        read_only_fields = fields


class InteractionCreateSerializer(serializers.Serializer):
    recommendation_id = serializers.UUIDField()
    interaction_type = serializers.ChoiceField(choices=InteractionType.choices)
    interaction_data = serializers.DictField(required=False, default=dict)
    session_id = serializers.CharField(required=False, allow_blank=True, max_length=255)


class FeedbackSerializer(serializers.Serializer):
    recommendation_id = serializers.UUIDField()
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    relevance = serializers.IntegerField(min_value=1, max_value=5, required=False)
    helpful = serializers.BooleanField(required=False, allow_null=True, default=None)
    comments = serializers.CharField(required=False, allow_blank=True)
    reason = serializers.CharField(required=False, allow_blank=True)


class ContentFeaturesSerializer(serializers.ModelSerializer):
    content_title = serializers.CharField(source="content_item.title", read_only=True)

    class Meta:
        model = ContentFeatures
        fields = (
            "id",
            "content_item",
            "content_title",
            "topics",
            "skills",
            "categories",
            "difficulty_level",
            "prerequisites",
            "learning_objectives",
            "content_characteristics",
            "engagement_metrics",
            "last_analyzed_at",
        )
        read_only_fields = fields


class ContentSimilaritySerializer(serializers.ModelSerializer):
    content_item = serializers.UUIDField(source="content_item_2_id", read_only=True)
    content_title = serializers.CharField(source="content_item_2.title", read_only=True)

    class Meta:
        model = ContentSimilarity
        fields = (
            "content_item",
            "content_title",
            "similarity_score",
            "similarity_factors",
            "algorithm_used",
            "last_calculated_at",
        )
        read_only_fields = fields


class UserSimilaritySerializer(serializers.ModelSerializer):
    user = serializers.UUIDField(source="user_2_id", read_only=True)

    class Meta:
        model = UserSimilarity
        fields = (
            "user",
            "similarity_score",
            "similarity_factors",
            "algorithm_used",
            "last_calculated_at",
        )
        read_only_fields = fields


class RecommendationModelSerializer(serializers.ModelSerializer):
    model_type = serializers.ChoiceField(choices=RecommendationType.choices)

    class Meta:
        model = RecommendationModel
        fields = (
            "id",
            "tenant",
            "name",
            "model_type",
            "description",
            "configuration",
            "training_data",
            "performance",
            "is_active",
            "version",
            "last_trained_at",
            "next_training_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "tenant",
            "training_data",
            "performance",
            "is_active",
            "version",
            "last_trained_at",
            "next_training_at",
            "created_at",
            "updated_at",
        )  # Tenant set from the request's organization
