# libs/insights_shared/guardrails.py
"""
Guardrails for request payloads that reach the services.
"""


class GuardrailViolation(Exception):
    """
    Exception raised when input violates a guardrail.

    This can include:
    - Oversized uploads
    - Oversized or empty query terms
    """

    def __init__(self, message: str, violation_type: str = "general"):
        self.message = message
        self.violation_type = violation_type
        super().__init__(self.message)

    def __str__(self):
        return f"Guardrail violation ({self.violation_type}): {self.message}"


def validate_input_length(text: str, max_length: int = 10000) -> None:
    """
    Validate that input text doesn't exceed maximum length.

    Args:
        text: Input text to validate
        max_length: Maximum allowed length

    Raises:
        GuardrailViolation: If text exceeds maximum length
    """
    if len(text) > max_length:
        raise GuardrailViolation(
            f"Input text too long: {len(text)} characters (max: {max_length})",
            violation_type="length",
        )


def validate_search_term(term: str, max_length: int = 200) -> str:
    """
    Normalize a free-text search term and enforce its length limit.

    Returns:
        The stripped term (possibly empty, meaning "no filter")

    Raises:
        GuardrailViolation: If the stripped term exceeds max_length
    """
    term = term.strip()
    validate_input_length(term, max_length)
    return term
