class InvalidArgument(ValueError):
    pass


class UnknownFormula(ValueError):
    pass


class EvaluationFailure(RuntimeError):
    """Raised when an evaluation unit fails; the underlying error is chained."""

    def __init__(self, rng, message: str = ""):
        self.range = rng
        super().__init__(message or f"evaluation failed for range [{rng.start}, {rng.end}]")
