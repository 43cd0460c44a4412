"""Lookups over a game's option declarations."""

from typing import Any, Mapping, Optional

from .constants import DEFAULT_SEQ
from .schemas import GameOption, JunkOption, MetaOption, MultiplierOption, Option


def merge_options(
    spec_options: Mapping[str, Option],
    game_options: Mapping[str, Option],
) -> dict[str, Option]:
    """
    Combine the rule-set's options with the game's own.

    A game option replaces the rule-set option of the same name, which is how
    a game overrides the point value of a named junk.
    """
    merged = dict(spec_options)
    merged.update(game_options)
    return merged


def _in_seq_order(options, default_seq: int) -> list:
    return sorted(options, key=lambda o: (o.seq if o.seq is not None else default_seq, o.name))


def junk_options(options: Mapping[str, Option], default_seq: int = DEFAULT_SEQ) -> list[JunkOption]:
    """
    Junk declarations in evaluation order (seq, then name).

    Declarations without a seq sort at ``default_seq``.
    """
    return _in_seq_order((o for o in options.values() if isinstance(o, JunkOption)), default_seq)


def multiplier_options(
    options: Mapping[str, Option],
    default_seq: int = DEFAULT_SEQ,
) -> list[MultiplierOption]:
    """Multiplier declarations in evaluation order (seq, then name)."""
    return _in_seq_order((o for o in options.values() if isinstance(o, MultiplierOption)), default_seq)


def game_option_value(options: Mapping[str, Option], name: str, default: Any = None) -> Any:
    """
    Resolved value of a plain game option.

    Args:
        options: Merged option declarations
        name: Option name (e.g., 'use_handicaps')
        default: Returned when the option is missing, not a game option, or unset

    Example:
        if game_option_value(ctx.options, 'match_play', False):
            ...
    """
    option = options.get(name)
    if not isinstance(option, GameOption):
        return default
    value = option.resolved()
    return default if value is None else value


def game_option_flag(options: Mapping[str, Option], name: str, default: bool = False) -> bool:
    """A game option read as a boolean, whatever its declared value_type."""
    value = game_option_value(options, name, default)
    if isinstance(value, str):
        return value.lower() == 'true'
    return bool(value)


def meta_option_value(options: Mapping[str, Option], name: str) -> Optional[Any]:
    """Value of a meta option ('short', 'aliases', ...), or None."""
    option = options.get(name)
    if not isinstance(option, MetaOption):
        return None
    if option.value_type == 'text_array':
        return list(option.value_array or [])
    if option.value is None:
        return None
    if option.value_type == 'bool':
        return option.value.lower() == 'true'
    if option.value_type == 'num':
        try:
            return float(option.value)
        except ValueError:
            return None
    return option.value
