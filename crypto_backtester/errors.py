"""Exception types raised by the indicator engine and the simulator."""


class InvalidParameter(ValueError):
    """A period, multiplier, fee or strategy argument violates its contract."""

    def __init__(self, name: str, value: object, reason: str):
        super().__init__(f"Invalid parameter {name}={value!r}: {reason}")
        self.name = name
        self.value = value
        self.reason = reason
