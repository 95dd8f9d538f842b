# patients/models.py - Patient groups, prescriptions and group messages
import os

from django.conf import settings
from django.core.validators import FileExtensionValidator
from django.db import models


class PatientGroup(models.Model):
    """A named batch of patients, e.g. for a shared vaccination session"""
    name = models.CharField(max_length=200)
    created_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='created_patient_groups')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def member_count(self):
        return self.members.count()


class PatientGroupMember(models.Model):
    group = models.ForeignKey(PatientGroup, on_delete=models.CASCADE, related_name='members')
    name = models.CharField(max_length=200)
    contact = models.CharField(max_length=20, blank=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['group', 'order', 'pk']

    def __str__(self):
        return f"{self.name} ({self.contact})" if self.contact else self.name


def prescription_upload_path(instance, filename):
    return f"prescriptions/group_{instance.group_id}/{filename}"


class Prescription(models.Model):
    group = models.ForeignKey(PatientGroup, on_delete=models.CASCADE, related_name='prescriptions')
    file = models.FileField(
        upload_to=prescription_upload_path,
        validators=[FileExtensionValidator(allowed_extensions=settings.PRESCRIPTION_ALLOWED_EXTENSIONS)]
    )
    original_name = models.CharField(max_length=255, blank=True)
    uploaded_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='uploaded_prescriptions')
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-uploaded_at']

    def __str__(self):
        return self.original_name or os.path.basename(self.file.name)

    @property
    def filename(self):
        return self.original_name or os.path.basename(self.file.name)

    def delete(self, *args, **kwargs):
        # Remove the stored file along with the row
        storage, name = self.file.storage, self.file.name
        super().delete(*args, **kwargs)
        if name:
            storage.delete(name)


class GroupMessage(models.Model):
    group = models.ForeignKey(PatientGroup, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='group_messages')
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'pk']

    def __str__(self):
        return f"{self.group.name}: {self.body[:40]}"

    @property
    def sender_name(self):
        from users.models import User
        return User.display_name_for(self.sender)
