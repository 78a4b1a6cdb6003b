from dataclasses import dataclass


@dataclass(frozen=True)
class OperatorContext:
    """Who is acting on the current request; passed explicitly into mutations."""

    identity: str
