from django.contrib import admin

from .models import (
    ContentFeatures,
    ContentSimilarity,
    RecommendationInteraction,
    RecommendationModel,
    UserLearningProfile,
    UserRecommendation,
    UserSimilarity,
)


@admin.register(UserLearningProfile)
class UserLearningProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "tenant", "learning_style", "profile_completeness", "last_profiled_at")
    list_filter = ("tenant", "learning_style")
    search_fields = ("user__email",)
    list_select_related = ("user", "tenant")


@admin.register(ContentFeatures)
class ContentFeaturesAdmin(admin.ModelAdmin):
    list_display = ("content_item", "tenant", "difficulty_level", "last_analyzed_at")
    list_filter = ("tenant", "difficulty_level")
    search_fields = ("content_item__title",)


@admin.register(RecommendationModel)
class RecommendationModelAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "model_type", "is_active", "version", "last_trained_at")
    list_filter = ("tenant", "model_type", "is_active")
    search_fields = ("name",)
    readonly_fields = ("training_data", "performance", "last_trained_at", "next_training_at")


@admin.register(UserRecommendation)
class UserRecommendationAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "recommendation_type",
        "content_item",
        "course",
        "confidence_score",
        "relevance_score",
        "status",
        "expires_at",
    )
    list_filter = ("tenant", "status", "recommendation_type")
    search_fields = ("user__email", "content_item__title", "course__title")
    list_select_related = ("user", "content_item", "course")


@admin.register(RecommendationInteraction)
class RecommendationInteractionAdmin(admin.ModelAdmin):
    list_display = ("user", "recommendation", "interaction_type", "created_at")
    list_filter = ("interaction_type",)
    search_fields = ("user__email",)

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(ContentSimilarity)
class ContentSimilarityAdmin(admin.ModelAdmin):
    list_display = ("content_item_1", "content_item_2", "similarity_score", "algorithm_used")
    search_fields = ("content_item_1__title", "content_item_2__title")


@admin.register(UserSimilarity)
class UserSimilarityAdmin(admin.ModelAdmin):
    list_display = ("user_1", "user_2", "similarity_score", "algorithm_used")
    search_fields = ("user_1__email", "user_2__email")
