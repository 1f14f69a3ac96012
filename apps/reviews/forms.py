from django import forms


def _score(required=False, label='Rating'):
    message = f'{label} must be between 1 and 5'
    return forms.IntegerField(
        required=required, min_value=1, max_value=5,
        error_messages={'min_value': message, 'max_value': message, 'invalid': message},
    )


class ReviewFieldsForm(forms.Form):
    rating = _score()
    comment = forms.CharField(
        required=False, max_length=1000,
        error_messages={'max_length': 'Comment must be less than 1000 characters'},
    )
    service_quality = _score(label='Service quality rating')
    punctuality = _score(label='Punctuality rating')
    communication = _score(label='Communication rating')
    would_recommend = forms.NullBooleanField(required=False)


class ReviewCreateForm(ReviewFieldsForm):
    booking_id = forms.UUIDField(error_messages={'invalid': 'Valid booking ID is required'})
    rating = _score(required=True)


class ReviewUpdateForm(ReviewFieldsForm):
    """All fields optional; only keys present in the request are applied."""
