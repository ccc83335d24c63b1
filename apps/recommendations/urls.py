from django.urls import path

from . import views

app_name = "recommendations"

urlpatterns = [
    path("personalized/", views.PersonalizedRecommendationsView.as_view(), name="personalized"),
    path("content-based/", views.ContentBasedRecommendationsView.as_view(), name="content-based"),
    path("collaborative/", views.CollaborativeRecommendationsView.as_view(), name="collaborative"),
    path("contextual/", views.ContextualRecommendationsView.as_view(), name="contextual"),
    path("trending/", views.TrendingRecommendationsView.as_view(), name="trending"),
    path(
        "matrix-factorization/",
        views.MatrixFactorizationRecommendationsView.as_view(),
        name="matrix-factorization",
    ),
    # Learning profile
    path("profile/", views.LearningProfileView.as_view(), name="profile"),
    path("profile/interests/", views.ProfileInterestsView.as_view(), name="profile-interests"),
    path("profile/career-path/", views.CareerPathView.as_view(), name="profile-career-path"),
    # Feedback
    path("interactions/", views.InteractionView.as_view(), name="interactions"),
    path("feedback/", views.FeedbackView.as_view(), name="feedback"),
    # Content
    path("content/<uuid:content_id>/analyze/", views.ContentAnalysisView.as_view(), name="content-analyze"),
    path("content/<uuid:content_id>/similar/", views.SimilarContentView.as_view(), name="content-similar"),
    path("skills/extract/<uuid:content_id>/", views.SkillExtractionView.as_view(), name="skills-extract"),
    # Models
    path("models/", views.RecommendationModelListView.as_view(), name="models"),
    path(
        "models/<uuid:model_id>/activate/",
        views.RecommendationModelActivationView.as_view(is_active=True),
        name="model-activate",
    ),
    path(
        "models/<uuid:model_id>/deactivate/",
        views.RecommendationModelActivationView.as_view(is_active=False),
        name="model-deactivate",
    ),
    path("analytics/", views.RecommendationAnalyticsView.as_view(), name="analytics"),
    path(
        "recommendations/<uuid:recommendation_id>/",
        views.RecommendationDetailView.as_view(),
        name="recommendation-detail",
    ),
    path(
        "user-similarities/<uuid:user_id>/",
        views.UserSimilaritiesView.as_view(),
        name="user-similarities",
    ),
    path("refresh-similarities/", views.RefreshSimilaritiesView.as_view(), name="refresh-similarities"),
    path("health/", views.HealthView.as_view(), name="health"),
]
