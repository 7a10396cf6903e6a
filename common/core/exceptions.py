class AppException(Exception):
    """Base application exception."""

    pass


class PaymentProviderError(AppException):
    """Payment processor call failed."""

    pass
