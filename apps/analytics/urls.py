from django.urls import path

from .views import AnalyticsProxyView

app_name = "analytics"

urlpatterns = [
    path("<path:path>", AnalyticsProxyView.as_view(), name="proxy"),
]
