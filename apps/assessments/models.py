from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from apps.common.models import TimestampedModel
from apps.courses.models import Course
from apps.users.models import User


class Assessment(TimestampedModel):
    course = models.ForeignKey(Course, related_name="assessments", on_delete=models.CASCADE)
    title = models.CharField(max_length=255)
    pass_mark_percentage = models.PositiveIntegerField(
        default=50, validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    is_published = models.BooleanField(default=False)

    def __str__(self):
        return self.title


class AssessmentAttempt(TimestampedModel):
    """A graded (or still open) attempt; open attempts have no score."""

    assessment = models.ForeignKey(Assessment, related_name="attempts", on_delete=models.CASCADE)
    user = models.ForeignKey(User, related_name="assessment_attempts", on_delete=models.CASCADE)
    score = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    max_score = models.PositiveIntegerField(null=True, blank=True)
    is_passed = models.BooleanField(null=True, blank=True)

    def __str__(self):
        return f"{self.user.email} on {self.assessment.title}"

    @property
    def score_fraction(self) -> float:
        """Score as a 0-1 fraction; without max_score the score is read as a percentage."""
        if self.score is None:
            return 0.0
        total = self.max_score or 100
        return max(0.0, min(float(self.score) / total, 1.0))
