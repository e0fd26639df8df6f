"""
Console for OJ Test Suite Downloader

The console is the output attached to a command: progress lines and results go to stdout,
warnings and prompts to stderr. It also owns the interactive prompts used by the login
flow, so tests and unattended runs can swap them out.
"""

import sys
import getpass
import logging
from typing import Callable, Optional, TextIO

logger = logging.getLogger(__name__)


class Console:
    """User-facing output and prompts for one command invocation"""

    def __init__(self, stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None,
                 interactive: Optional[bool] = None,
                 input_func: Callable[[str], str] = input,
                 password_func: Optional[Callable[[str], str]] = None):
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        if interactive is None:
            interactive = sys.stdin is not None and sys.stdin.isatty()
        self.interactive = interactive
        self._input = input_func
        self._password = password_func or (lambda prompt: getpass.getpass(prompt, stream=self.stderr))

    def write(self, message: str = "") -> None:
        print(message, file=self.stdout, flush=True)

    def warn(self, message: str) -> None:
        logger.warning(message)
        print(message, file=self.stderr, flush=True)

    def ask_yes_or_no(self, prompt: str, default: bool) -> bool:
        """Ask until the reply is empty (default), y/yes or n/no"""
        suffix = "(Y/n) " if default else "(y/N) "
        while True:
            self.stderr.write(prompt + suffix)
            self.stderr.flush()
            reply = self._input("").strip().lower()
            if not reply:
                return default
            if reply in ("y", "yes"):
                return True
            if reply in ("n", "no"):
                return False
            print('Answer "y", "yes", "n", "no", or "".', file=self.stderr, flush=True)

    def prompt_reply(self, prompt: str) -> str:
        self.stderr.write(prompt)
        self.stderr.flush()
        return self._input("")

    def prompt_password(self, prompt: str) -> str:
        return self._password(prompt)
