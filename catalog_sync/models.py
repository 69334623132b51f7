from django.db import models


class ShopSession(models.Model):
    """Credential stored for a shop by the app's install/auth layer."""

    shop = models.CharField(max_length=255, unique=True)
    access_token = models.CharField(max_length=255, blank=True)
    scope = models.CharField(max_length=1024, blank=True)
    is_online = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.shop


class ProductDocument(models.Model):
    shop_name = models.CharField(max_length=255)
    product_id = models.CharField(max_length=255)
    title = models.CharField(max_length=255, blank=True)
    handle = models.CharField(max_length=255, blank=True)
    featured_image = models.JSONField(null=True, blank=True)
    images = models.JSONField(default=list)
    variants = models.JSONField(default=list)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['shop_name', 'product_id'],
                name='unique_product_per_shop',
            ),
        ]

    def __str__(self):
        return f"{self.shop_name}:{self.product_id}"


class SyncStatus(models.Model):
    class Status(models.TextChoices):
        STARTED = 'started'
        IN_PROGRESS = 'in_progress'
        COMPLETED = 'completed'
        FAILED = 'failed'
        ERROR = 'error'

    sync_id = models.CharField(max_length=32, unique=True)
    shop_name = models.CharField(max_length=255, db_index=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.STARTED)
    started_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    progress = models.FloatField(default=0)
    message = models.TextField(blank=True)
    processed = models.PositiveIntegerField(default=0)
    inserted = models.PositiveIntegerField(default=0)
    updated = models.PositiveIntegerField(default=0)
    deleted = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.sync_id} {self.shop_name} {self.status} ({self.progress:.0f}%)"
