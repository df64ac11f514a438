"""
User models for the Journal Portal.
Handles authentication and the single journal role each account holds.
"""
import uuid
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.core.validators import EmailValidator


class CustomUserManager(UserManager):
    """Custom user manager that uses email instead of username."""

    def create_user(self, email, password=None, **extra_fields):
        """Create and return a regular user with an email and password."""
        if not email:
            raise ValueError('The Email field must be set')

        email = self.normalize_email(email)
        extra_fields.setdefault('username', email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create and return a superuser with an email and password."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', CustomUser.ROLE_ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class CustomUser(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.
    Uses UUID as primary key and email as username.
    """
    ROLE_VISITOR = 'VISITOR'
    ROLE_AUTHOR = 'AUTHOR'
    ROLE_REVIEWER = 'REVIEWER'
    ROLE_EDITOR = 'EDITOR'
    ROLE_ADMIN = 'ADMIN'

    ROLE_CHOICES = [
        (ROLE_VISITOR, 'Visitor'),
        (ROLE_AUTHOR, 'Author'),
        (ROLE_REVIEWER, 'Reviewer'),
        (ROLE_EDITOR, 'Editor'),
        (ROLE_ADMIN, 'Administrator'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(
        unique=True,
        validators=[EmailValidator()],
        help_text="Unique email address for authentication"
    )
    username = models.CharField(
        max_length=150,
        unique=True,
        null=True,
        blank=True,
        help_text="Optional username, defaults to email"
    )

    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    affiliation = models.CharField(max_length=255, blank=True)
    orcid_id = models.CharField(
        max_length=19,
        blank=True,
        help_text="ORCID identifier (e.g., 0000-0000-0000-0000)"
    )
    expertise = models.JSONField(
        default=list,
        blank=True,
        help_text="Research areas, used when suggesting reviewers"
    )
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_AUTHOR
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        app_label = 'users'
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['role', 'is_active']),
            models.Index(fields=['created_at']),
        ]

    def save(self, *args, **kwargs):
        if not self.username:
            self.username = self.email
        if self.is_superuser:
            self.role = self.ROLE_ADMIN
        super().save(*args, **kwargs)

    def __str__(self):
        return self.email

    @property
    def full_name(self):
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email

    @property
    def capabilities(self):
        from apps.users.roles import capabilities_for
        return capabilities_for(self)
