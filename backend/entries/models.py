from django.conf import settings
from django.db import models


class EntryType(models.TextChoices):
    MOVIE = 'Movie', 'Movie'
    TV = 'TV', 'TV Show'


class Action(models.TextChoices):
    LIKE = 'like', 'Like'
    DISLIKE = 'dislike', 'Dislike'


class Entry(models.Model):
    title = models.CharField(max_length=200)
    type = models.CharField(max_length=5, choices=EntryType.choices)
    director = models.CharField(max_length=100)
    budget = models.CharField(max_length=100)
    location = models.CharField(max_length=100)
    duration = models.CharField(max_length=100)
    year_time = models.CharField(max_length=50)
    image_url = models.URLField(max_length=500, null=True, blank=True)
    is_released = models.BooleanField(default=False)
    # Maintained by entries.counters only; always equal to the ledger row counts
    likes = models.PositiveIntegerField(default=0)
    dislikes = models.PositiveIntegerField(default=0)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='entries')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', 'created_at'], name='entry_user_created_idx'),
            models.Index(fields=['is_released', 'likes'], name='entry_released_likes_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.type})"


class Interaction(models.Model):
    """A user's single current reaction to an entry."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='interactions')
    entry = models.ForeignKey(Entry, on_delete=models.CASCADE, related_name='interactions')
    action = models.CharField(max_length=7, choices=Action.choices)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['user', 'entry'], name='unique_interaction_per_user_entry'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.entry_id}: {self.action}"
