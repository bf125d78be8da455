"""Key vocabulary for tablet button combinations.

Identifiers are the Linux evdev key names the driver resolves with
``Key::from_str`` (``KEY_A``, ``KEY_LEFTCTRL``, ...). The catalog is closed:
anything not listed here is not a valid key for a button mapping.
"""

from typing import Optional

# Sentinel for "no key assigned"
NO_KEY = 'NONE'

KEY_PREFIX = 'KEY_'

# evdev codes from linux/input-event-codes.h
# Format: identifier: code
KEY_CODES = {
    # Modifiers
    'KEY_LEFTCTRL': 29, 'KEY_RIGHTCTRL': 97,
    'KEY_LEFTSHIFT': 42, 'KEY_RIGHTSHIFT': 54,
    'KEY_LEFTALT': 56, 'KEY_RIGHTALT': 100,
    'KEY_LEFTMETA': 125, 'KEY_RIGHTMETA': 126,

    # Letters
    'KEY_A': 30, 'KEY_B': 48, 'KEY_C': 46, 'KEY_D': 32, 'KEY_E': 18,
    'KEY_F': 33, 'KEY_G': 34, 'KEY_H': 35, 'KEY_I': 23, 'KEY_J': 36,
    'KEY_K': 37, 'KEY_L': 38, 'KEY_M': 50, 'KEY_N': 49, 'KEY_O': 24,
    'KEY_P': 25, 'KEY_Q': 16, 'KEY_R': 19, 'KEY_S': 31, 'KEY_T': 20,
    'KEY_U': 22, 'KEY_V': 47, 'KEY_W': 17, 'KEY_X': 45, 'KEY_Y': 21,
    'KEY_Z': 44,

    # Digits
    'KEY_1': 2, 'KEY_2': 3, 'KEY_3': 4, 'KEY_4': 5, 'KEY_5': 6,
    'KEY_6': 7, 'KEY_7': 8, 'KEY_8': 9, 'KEY_9': 10, 'KEY_0': 11,

    # Editing
    'KEY_ESC': 1,
    'KEY_TAB': 15,
    'KEY_ENTER': 28,
    'KEY_SPACE': 57,
    'KEY_BACKSPACE': 14,
    'KEY_DELETE': 111,
    'KEY_INSERT': 110,

    # Navigation
    'KEY_HOME': 102,
    'KEY_END': 107,
    'KEY_PAGEUP': 104,
    'KEY_PAGEDOWN': 109,
    'KEY_UP': 103,
    'KEY_DOWN': 108,
    'KEY_LEFT': 105,
    'KEY_RIGHT': 106,

    # Punctuation
    'KEY_MINUS': 12, 'KEY_EQUAL': 13,
    'KEY_LEFTBRACE': 26, 'KEY_RIGHTBRACE': 27,
    'KEY_SEMICOLON': 39, 'KEY_APOSTROPHE': 40, 'KEY_GRAVE': 41,
    'KEY_BACKSLASH': 43, 'KEY_COMMA': 51, 'KEY_DOT': 52, 'KEY_SLASH': 53,

    # Function keys F1-F12
    'KEY_F1': 59, 'KEY_F2': 60, 'KEY_F3': 61, 'KEY_F4': 62,
    'KEY_F5': 63, 'KEY_F6': 64, 'KEY_F7': 65, 'KEY_F8': 66,
    'KEY_F9': 67, 'KEY_F10': 68, 'KEY_F11': 87, 'KEY_F12': 88,
}

# Ordered catalog, sentinel first (spinner order in the GUI)
KEYS = (NO_KEY,) + tuple(KEY_CODES)

CODE_KEYS = {code: name for name, code in KEY_CODES.items()}


def is_key(name: str) -> bool:
    """Check if name is a member of the vocabulary (sentinel included)."""
    return name == NO_KEY or name in KEY_CODES


def display_name(name: str) -> str:
    """Human-readable form of a key identifier.

    ``KEY_LEFTCTRL`` becomes ``LEFTCTRL``; the sentinel shows as ``None``.
    """
    if name == NO_KEY:
        return 'None'
    if name.startswith(KEY_PREFIX):
        return name[len(KEY_PREFIX):]
    return name


def key_for_code(code: int) -> Optional[str]:
    """Convert an evdev key code to its identifier, or None if unknown."""
    return CODE_KEYS.get(code)


def parse_key(text: str) -> str:
    """Convert user input to a canonical key identifier.

    Accepts the full identifier (``KEY_Z``), the display form (``z``) or
    ``none``, case-insensitively.

    Raises:
        ValueError: if the text does not name a key in the vocabulary.
    """
    token = text.strip().upper()
    if token in (NO_KEY, 'NO_KEY', ''):
        return NO_KEY
    if token in KEY_CODES:
        return token
    prefixed = KEY_PREFIX + token
    if prefixed in KEY_CODES:
        return prefixed
    raise ValueError(f"Unknown key: {text!r}")
