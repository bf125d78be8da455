"""Button combination codec.

A tablet button is persisted as a single string of at most two key
identifiers joined by ``+`` (``"KEY_LEFTCTRL+KEY_Z"``), or ``""`` when the
button is unmapped. The panel edits it as a pair of identifiers where an
empty slot holds ``NO_KEY``.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .keys import NO_KEY, display_name, is_key

LOG = logging.getLogger("tablez.combo")

COMBO_SEP = '+'

# Number of physical buttons on the tablet
BUTTON_SLOTS = 8

ComboPair = Tuple[str, str]

EMPTY_PAIR: ComboPair = (NO_KEY, NO_KEY)


def _decode_segment(segment: str) -> str:
    name = segment.strip()
    if not name:
        return NO_KEY
    if not is_key(name):
        LOG.warning("Unknown key %r in combination, treating as unset", name)
        return NO_KEY
    return name


def decode_combo(text: Optional[str]) -> ComboPair:
    """Convert a persisted combination string to an editable pair.

    Only the first two segments are used; anything after a second ``+`` is
    dropped. Unknown identifiers decode to ``NO_KEY``.
    """
    if not text:
        return EMPTY_PAIR

    segments = text.split(COMBO_SEP)
    first = _decode_segment(segments[0])
    second = _decode_segment(segments[1]) if len(segments) > 1 else NO_KEY
    return (first, second)


def encode_combo(pair: Sequence[str]) -> str:
    """Convert an editable pair to its persisted string.

    Sentinel slots are skipped, so ``(NO_KEY, NO_KEY)`` encodes to ``""``.
    """
    keys = []
    for name in pair[:2]:
        if name == NO_KEY:
            continue
        if not is_key(name):
            LOG.warning("Dropping unknown key %r from combination", name)
            continue
        keys.append(name)
    return COMBO_SEP.join(keys)


def decode_buttons(mappings: Iterable[str]) -> List[ComboPair]:
    """Decode a button mapping sequence into exactly BUTTON_SLOTS pairs.

    Missing slots are padded with ``(NO_KEY, NO_KEY)``.
    """
    pairs = [decode_combo(text) for text in list(mappings)[:BUTTON_SLOTS]]
    pairs.extend([EMPTY_PAIR] * (BUTTON_SLOTS - len(pairs)))
    return pairs


def encode_buttons(pairs: Iterable[Sequence[str]]) -> List[str]:
    """Encode editable pairs into exactly BUTTON_SLOTS mapping strings."""
    mappings = [encode_combo(pair) for pair in list(pairs)[:BUTTON_SLOTS]]
    mappings.extend([''] * (BUTTON_SLOTS - len(mappings)))
    return mappings


def pad_mappings(mappings: Iterable[str]) -> Tuple[str, ...]:
    """Pad a raw mapping sequence with empty strings up to BUTTON_SLOTS.

    Longer sequences are returned unchanged.
    """
    mappings = tuple(mappings)
    if len(mappings) < BUTTON_SLOTS:
        mappings += ('',) * (BUTTON_SLOTS - len(mappings))
    return mappings


def format_combo(pair: Sequence[str]) -> str:
    """Display form of a pair, e.g. ``LEFTCTRL + Z``."""
    names = [display_name(name) for name in pair if name != NO_KEY]
    return ' + '.join(names) if names else 'None'
