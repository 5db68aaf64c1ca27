"""Custom exceptions for model configuration validation."""


class InvalidModelError(Exception):
    """Raised when a model configuration is malformed.

    Grids with fewer than two points, income generators whose rows do not
    sum to zero, or bounds that violate a model's constraints are detected
    when the configuration is built. The error is fatal and never retried.

    Attributes:
        issues: List of specific configuration problems found.

    Examples:
        Catching and inspecting issues::

            try:
                IncomeProcessConfig(levels=[0.1, 0.2], generator=[[-1, 2], [1, -1]])
            except InvalidModelError as e:
                for issue in e.issues:
                    print(f"  - {issue}")
    """

    def __init__(self, issues: list[str]) -> None:
        self.issues = issues
        bullet_list = "\n".join(f"  - {issue}" for issue in issues)
        super().__init__(
            f"Model configuration has {len(issues)} "
            f"{'issue' if len(issues) == 1 else 'issues'}:\n{bullet_list}"
        )
