"""Exception types raised while scoring a game."""


class SpicyError(Exception):
    """Base class for errors raised by the spicy package."""


class ScoringConfigError(SpicyError, ValueError):
    """The rule-set or scoring configuration is unusable."""


class RuleConfigError(ScoringConfigError):
    """
    A single junk or multiplier declaration is malformed.

    Raised while compiling or evaluating one option declaration. Stages catch
    it per declaration so the remaining declarations are still evaluated.

    Attributes:
        option_name: Name of the offending option declaration
        hole: Hole being evaluated when the error surfaced (None at compile time)
    """

    def __init__(self, option_name: str, message: str, hole: str | None = None):
        self.option_name = option_name
        self.hole = hole
        self.reason = message
        where = f' (hole {hole})' if hole else ''
        super().__init__(f'{option_name}{where}: {message}')
