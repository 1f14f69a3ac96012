from decimal import Decimal

from django import forms
from django.core.validators import RegexValidator

from apps.accounts.models import normalize_phone

from .models import BookingStatus, MaterialsProvidedBy


def _clean_phone(raw):
    try:
        return normalize_phone(raw)
    except ValueError as exc:
        raise forms.ValidationError(
            "Please enter a valid 10-digit Indian mobile number "
            "(e.g. 98765 43210 or +91 98765 43210)."
        ) from exc


class BookingCreateForm(forms.Form):
    provider_id = forms.UUIDField(error_messages={'invalid': 'Valid Poojari ID is required'})
    service_type = forms.CharField(max_length=120)
    service_description = forms.CharField(required=False)
    scheduled_date = forms.DateField(input_formats=['%Y-%m-%d'])
    scheduled_time = forms.TimeField(
        input_formats=['%H:%M', '%H:%M:%S'],
        error_messages={'invalid': 'Valid time format required (HH:MM)'},
    )
    duration_hours = forms.DecimalField(
        required=False, max_digits=3, decimal_places=1,
        min_value=Decimal('0.5'), max_value=Decimal('12'),
        error_messages={
            'min_value': 'Duration must be between 0.5 and 12 hours',
            'max_value': 'Duration must be between 0.5 and 12 hours',
        },
    )
    amount = forms.DecimalField(
        max_digits=10, decimal_places=2, min_value=0,
        error_messages={'min_value': 'Amount must be positive'},
    )
    address = forms.CharField()
    city = forms.CharField(max_length=100)
    state = forms.CharField(max_length=100)
    pincode = forms.CharField(
        validators=[RegexValidator(r'^\d{6}$', 'Valid pincode is required')],
    )
    latitude = forms.DecimalField(required=False, max_digits=10, decimal_places=8)
    longitude = forms.DecimalField(required=False, max_digits=11, decimal_places=8)
    special_requirements = forms.CharField(required=False)
    materials_required = forms.JSONField(required=False)
    materials_provided_by = forms.ChoiceField(
        required=False, choices=MaterialsProvidedBy.choices,
    )
    contact_phone = forms.CharField(max_length=20)
    alternate_phone = forms.CharField(max_length=20, required=False)
    booking_notes = forms.CharField(required=False, max_length=1000)

    def clean_contact_phone(self):
        return _clean_phone(self.cleaned_data.get('contact_phone', ''))

    def clean_alternate_phone(self):
        raw = self.cleaned_data.get('alternate_phone', '')
        return _clean_phone(raw) if raw else ''

    def clean_materials_required(self):
        value = self.cleaned_data.get('materials_required')
        if value in (None, ''):
            return []
        if not isinstance(value, list):
            raise forms.ValidationError('Materials must be a list.')
        return value

    def clean(self):
        cleaned = super().clean()
        # Empty optional fields fall back to model defaults
        for name in ('duration_hours', 'materials_provided_by', 'latitude', 'longitude'):
            if cleaned.get(name) in (None, ''):
                cleaned.pop(name, None)
        return cleaned


class StatusUpdateForm(forms.Form):
    status = forms.ChoiceField(
        choices=[
            (s.value, s.label) for s in BookingStatus
            if s not in (BookingStatus.PENDING, BookingStatus.REFUNDED)
        ],
        error_messages={'invalid_choice': 'Invalid status'},
    )
    notes = forms.CharField(
        required=False, max_length=500,
        error_messages={'max_length': 'Notes must be less than 500 characters'},
    )


class CancelForm(forms.Form):
    reason = forms.CharField(error_messages={'required': 'Cancellation reason is required'})


class BookingListForm(forms.Form):
    status = forms.ChoiceField(
        required=False,
        choices=[('', 'Any')] + list(BookingStatus.choices),
        error_messages={'invalid_choice': 'Invalid status'},
    )
    page = forms.IntegerField(
        required=False, min_value=1,
        error_messages={'min_value': 'Page must be a positive integer'},
    )
    limit = forms.IntegerField(
        required=False, min_value=1, max_value=50,
        error_messages={
            'min_value': 'Limit must be between 1 and 50',
            'max_value': 'Limit must be between 1 and 50',
        },
    )
