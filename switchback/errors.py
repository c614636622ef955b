__all__ = (
    'SwitchbackException',
    'InvalidSetting',
)

class SwitchbackException(Exception):
    """Base inheritance class for every error raised by switchback."""
    pass

class InvalidSetting(SwitchbackException):
    pass
