class InvariantViolation(Exception):
    """Raised when input or state breaks a domain rule."""
