from django import forms


class CreateOrderForm(forms.Form):
    booking_id = forms.UUIDField(error_messages={'invalid': 'Valid booking ID is required'})
    amount = forms.DecimalField(
        required=False, max_digits=10, decimal_places=2, min_value=0,
        error_messages={'min_value': 'Amount must be positive'},
    )


class VerifyPaymentForm(forms.Form):
    booking_id = forms.UUIDField(error_messages={'invalid': 'Valid booking ID is required'})
    razorpay_order_id = forms.CharField(
        max_length=100, error_messages={'required': 'Razorpay order ID is required'},
    )
    razorpay_payment_id = forms.CharField(
        max_length=100, error_messages={'required': 'Razorpay payment ID is required'},
    )
    razorpay_signature = forms.CharField(
        max_length=255, error_messages={'required': 'Razorpay signature is required'},
    )


class RefundForm(forms.Form):
    transaction_id = forms.UUIDField(error_messages={'invalid': 'Valid transaction ID is required'})
    amount = forms.DecimalField(
        required=False, max_digits=10, decimal_places=2, min_value=0,
        error_messages={'min_value': 'Refund amount must be positive'},
    )
    reason = forms.CharField(error_messages={'required': 'Refund reason is required'})
