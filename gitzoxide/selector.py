"""
Interactive selection of one candidate out of many.

The resolver only sees the ``Selector`` protocol. ``FzfSelector`` is the
default implementation and runs ``fzf`` as a subprocess.
"""

import logging
import shutil
import subprocess
from typing import Optional, Protocol, Sequence, runtime_checkable

from .errors import NoSelection, SelectionCancelled, SelectorError

logger = logging.getLogger(__name__)

# fzf exit statuses
FZF_OK = 0
FZF_NO_MATCH = 1
FZF_ERROR = 2
FZF_INTERRUPTED = 130


@runtime_checkable
class Selector(Protocol):
    """Pick one entry from an ordered list of keys."""

    def select(self, keys: Sequence[str]) -> int:
        """
        Returns:
            Index of the chosen key

        Raises:
            NoSelection: nothing matched the user's filter
            SelectionCancelled: the user aborted
            SelectorError: the selector could not run or failed
        """
        ...


class FzfSelector:
    """Runs ``fzf`` with one key per line on stdin."""

    def __init__(self, program: str = "fzf", args: Optional[Sequence[str]] = None):
        self.program = program
        self.args = list(args or [])

    def select(self, keys: Sequence[str]) -> int:
        executable = shutil.which(self.program)
        if executable is None:
            raise SelectorError(f"could not find {self.program}, is it installed?")

        stdin = "".join(f"{key}\n" for key in keys)
        logger.debug("Running %s with %d candidates", self.program, len(keys))
        try:
            # stderr is left attached to the terminal, fzf draws its UI there
            proc = subprocess.run(
                [executable, *self.args],
                input=stdin,
                stdout=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise SelectorError(f"could not launch {self.program}: {e}") from e

        return self._interpret(proc.returncode, proc.stdout.strip(), keys)

    def _interpret(self, code: int, output: str, keys: Sequence[str]) -> int:
        if code == FZF_OK:
            try:
                return list(keys).index(output)
            except ValueError:
                raise SelectorError(f"could not find key {output}") from None
        if code == FZF_NO_MATCH:
            raise NoSelection("no match found")
        if code == FZF_ERROR:
            raise SelectorError(f"{self.program} returned an error")
        if code == FZF_INTERRUPTED:
            raise SelectionCancelled(code)
        if code < 0 or 128 <= code <= 254:
            raise SelectorError(f"{self.program} was terminated")
        raise SelectorError(f"{self.program} returned an unknown error ({code})")
