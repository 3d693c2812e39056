"""Fixed-size table of encrypted per-option tallies."""

from typing import List, Tuple

from fhe import CiphertextHandle

from .errors import InvalidOption


def is_valid_option(option, num_options: int) -> bool:
    if isinstance(option, bool) or not isinstance(option, int):
        return False
    return 0 <= option < num_options


class TallyStore:
    """
    One ciphertext handle per option.

    Slots are created once and only ever replaced, never removed, so the
    store always holds exactly num_options handles.
    """

    def __init__(self, initial: List[CiphertextHandle]):
        if not initial:
            raise ValueError("TallyStore needs at least one option")
        if any(not isinstance(h, CiphertextHandle) for h in initial):
            raise TypeError("Every tally slot must hold a CiphertextHandle")
        self._slots = list(initial)

    @property
    def num_options(self) -> int:
        return len(self._slots)

    def get_tally(self, option: int) -> CiphertextHandle:
        if not is_valid_option(option, len(self._slots)):
            raise InvalidOption(option, len(self._slots))
        return self._slots[option]

    def replace(self, option: int, handle: CiphertextHandle) -> CiphertextHandle:
        """Swap in handle for option; return the superseded handle"""
        if not is_valid_option(option, len(self._slots)):
            raise InvalidOption(option, len(self._slots))
        if not isinstance(handle, CiphertextHandle):
            raise TypeError(f"Tally slot cannot hold {handle!r}")
        previous = self._slots[option]
        self._slots[option] = handle
        return previous

    def snapshot(self) -> Tuple[CiphertextHandle, ...]:
        return tuple(self._slots)
