"""
Operator command console.

Reads one command per line from stdin on its own thread while the listener
serves requests.
"""

import sys
import threading
import webbrowser
from typing import Callable, Optional, TextIO

from loguru import logger


# Colors for terminal output
class Colors:
    BLUE = "\033[94m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BOLD = "\033[1m"
    END = "\033[0m"


def print_colored(text, color, file=None):
    print(f"{color}{text}{Colors.END}", file=file or sys.stdout, flush=True)


def clear_screen(stream: Optional[TextIO] = None):
    stream = stream or sys.stdout
    stream.write("\033[2J\033[H")
    stream.flush()


def set_terminal_title(title: str, stream: Optional[TextIO] = None):
    """Set the terminal window title; ignored when not attached to a TTY."""
    stream = stream or sys.stdout
    if stream.isatty():
        stream.write(f"\033]0;{title}\007")
        stream.flush()


class CommandConsole:
    """
    Line-oriented command loop bound to one server.

    Commands are matched exactly (case-sensitive) after stripping the line
    terminator.
    """

    UNKNOWN_COMMAND = "Not a command. Check case sensitivity"

    def __init__(
        self,
        server,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        open_browser: Callable[[str], bool] = webbrowser.open,
    ):
        self.server = server
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.open_browser = open_browser
        self.commands = {
            "clear": self.cmd_clear,
            "ip": self.cmd_ip,
            "stop": self.cmd_stop,
            "test": self.cmd_test,
            "starttime": self.cmd_starttime,
            "help": self.cmd_help,
        }
        self._thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="duoserver-console", daemon=True)
        self._thread.start()
        return self._thread

    def run(self):
        logger.info("Input thread started")
        for line in iter(self.stdin.readline, ""):
            if not self.dispatch(line.rstrip("\r\n")):
                return
        logger.warning("Console input closed; server keeps running until stopped by signal")

    def dispatch(self, command: str) -> bool:
        """Run one command. Returns False when the console should exit."""
        handler = self.commands.get(command)
        if handler is None:
            self.write(self.UNKNOWN_COMMAND)
            return True
        return handler() is not False

    def write(self, text: str):
        print(text, file=self.stdout, flush=True)

    def cmd_clear(self):
        clear_screen(self.stdout)

    def cmd_ip(self):
        self.write(self.server.address)

    def cmd_stop(self):
        print_colored("🛑 Stopping server...", Colors.YELLOW, file=self.stdout)
        self.server.stop()
        return False

    def cmd_test(self):
        url = self.server.url
        if not self.open_browser(url):
            logger.warning(f"Could not open a browser for {url}")

    def cmd_starttime(self):
        self.write(str(self.server.uptime()))

    def cmd_help(self):
        self.write("Commands: " + ", ".join(self.commands))
