"""User accounts of the commission tracker.

Three kinds of people use the API: administrators, who maintain companies,
representatives, commission rules and monthly figures, financial auditors,
who record the monthly deductions, and readers, who only consult reports.
The distinction is carried by ``User.role``.
"""
from django.contrib.auth.models import (
    AbstractBaseUser,
    BaseUserManager,
    PermissionsMixin,
)
from django.db import models

from core.models import TimeStampedModel


class UserManager(BaseUserManager):
    """Users are identified by their e-mail address."""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("L'adresse e-mail est obligatoire.")
        user = self.model(email=self.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault("role", User.Role.SUPERADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        if not (extra_fields["is_staff"] and extra_fields["is_superuser"]):
            raise ValueError("Un superutilisateur doit avoir is_staff et is_superuser actifs.")
        return self._create_user(email, password, **extra_fields)


class User(TimeStampedModel, AbstractBaseUser, PermissionsMixin):
    class Role(models.TextChoices):
        SUPERADMIN = "SUPERADMIN", "Super administrateur"
        ADMIN = "ADMIN", "Administrateur"
        AUDITOR = "AUDITOR", "Auditeur financier"
        USER = "USER", "Utilisateur"

    MANAGER_ROLES = (Role.ADMIN, Role.SUPERADMIN)

    email = models.EmailField(
        "adresse e-mail",
        unique=True,
        error_messages={"unique": "Un utilisateur avec cette adresse e-mail existe deja."},
    )
    first_name = models.CharField("prenom", max_length=150)
    last_name = models.CharField("nom", max_length=150)
    phone = models.CharField("telephone", max_length=30, blank=True, default="")
    role = models.CharField(
        "role", max_length=20, choices=Role.choices, default=Role.USER, db_index=True,
    )
    is_active = models.BooleanField("actif", default=True)
    is_staff = models.BooleanField("acces a l'administration", default=False)

    objects = UserManager()

    USERNAME_FIELD = "email"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["first_name", "last_name"]

    class Meta:
        verbose_name = "utilisateur"
        verbose_name_plural = "utilisateurs"
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return self.get_full_name() or self.email

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def get_short_name(self):
        return self.first_name

    @property
    def is_superadmin(self):
        return self.role == self.Role.SUPERADMIN

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def can_manage_commissions(self):
        """Write access to reference data, sales and collections."""
        return self.is_superuser or self.role in self.MANAGER_ROLES

    @property
    def can_audit_finances(self):
        """Read and write access to financial audits; deletion stays with managers."""
        return self.can_manage_commissions or self.role == self.Role.AUDITOR

    @property
    def role_display(self):
        return self.get_role_display()
