import logging
import shlex
import sys
from typing import Callable, Dict, List, Optional, TextIO, Tuple

from StringQueue import (
    FaultyAllocator,
    Queue,
    q_free,
    q_insert_head,
    q_insert_tail,
    q_new,
    q_remove_head,
    q_reverse,
    q_size,
    q_sort,
)

logger = logging.getLogger(__name__)

DELIM = "&-=-&"

DEFAULT_OPTIONS: Dict[str, int] = {
    "verbose": 1,   # 0 errors only .. 3 debug
    "length": 1024, # buffer size handed to remove_head
    "fail": 0,      # percent of allocations that fail in new queues
    "seed": 0,
    "echo": 1,
}

VERBOSE_LEVELS = {0: logging.ERROR, 1: logging.WARNING, 2: logging.INFO, 3: logging.DEBUG}


def print_section(name: str, out: Optional[TextIO] = None):
    print(f"{DELIM} {name}", file=out or sys.stdout)


class Interpreter:
    """Line-oriented command interpreter driving one queue at a time."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out or sys.stdout
        self.q: Optional[Queue] = None
        self.options: Dict[str, int] = dict(DEFAULT_OPTIONS)
        self.errors = 0
        self.stopped = False
        self.commands: Dict[str, Tuple[Callable[[List[str]], bool], str]] = {
            "new": (self.do_new, "                | Create new queue"),
            "free": (self.do_free, "                | Delete queue"),
            "ih": (self.do_ih, "str [n]         | Insert string str at head of queue n times (default 1)"),
            "it": (self.do_it, "str [n]         | Insert string str at tail of queue n times (default 1)"),
            "rh": (self.do_rh, "[str]           | Remove from head of queue. Optionally compare to expected value str"),
            "rhq": (self.do_rhq, "                | Remove from head of queue without reporting value"),
            "size": (self.do_size, "[n]             | Compute queue size n times (default 1)"),
            "reverse": (self.do_reverse, "                | Reverse queue"),
            "sort": (self.do_sort, "                | Sort queue in ascending order"),
            "show": (self.do_show, "                | Display queue contents"),
            "option": (self.do_option, "[name val]      | Display or set options"),
            "source": (self.do_source, "file            | Read commands from source file"),
            "help": (self.do_help, "                | Show documentation"),
            "quit": (self.do_quit, "                | Exit program"),
        }

    # ---- reporting ----
    def say(self, msg: str):
        print(msg, file=self.out)

    def error(self, msg: str) -> bool:
        self.errors += 1
        self.say(f"ERROR: {msg}")
        logger.warning(msg)
        return False

    def show_queue(self):
        if self.q is None:
            self.say("q = NULL")
            return
        self.say(f"q = [{' '.join(self.q.to_list())}] size={self.q.size()}")

    def _count(self, args: List[str], index: int) -> int:
        if len(args) <= index:
            return 1
        n = int(args[index])
        if n < 0:
            raise ValueError(f"invalid count '{args[index]}'")
        return n

    # ---- commands ----
    def do_new(self, args: List[str]) -> bool:
        if self.q is not None:
            logger.info("Freeing old queue")
            q_free(self.q)
        self.q = q_new(FaultyAllocator(self.options["fail"], self.options["seed"]))
        if self.q is None:
            return self.error("Allocation of queue failed")
        self.show_queue()
        return True

    def do_free(self, args: List[str]) -> bool:
        if self.q is None:
            logger.warning("Calling free on null queue")
        q_free(self.q)
        self.q = None
        self.show_queue()
        return True

    def _insert(self, args: List[str], insert: Callable[[Optional[Queue], str], bool], end: str) -> bool:
        if not args:
            return self.error(f"insert at {end} needs a string argument")
        value = args[0]
        n = self._count(args, 1)
        if self.q is None:
            logger.warning("Calling insert %s on null queue", end)
        ok = True
        for _ in range(n):
            if not insert(self.q, value):
                if self.q is not None and self.options["fail"]:
                    logger.info("Insertion of %s failed (allocation failure)", value)
                    continue
                ok = self.error(f"Insertion of {value} failed")
                break
        self.show_queue()
        return ok

    def do_ih(self, args: List[str]) -> bool:
        return self._insert(args, q_insert_head, "head")

    def do_it(self, args: List[str]) -> bool:
        return self._insert(args, q_insert_tail, "tail")

    def do_rh(self, args: List[str]) -> bool:
        expected = args[0] if args else None
        if self.q is None:
            logger.warning("Calling remove head on null queue")
        elif self.q.empty():
            logger.warning("Calling remove head on empty queue")
        bufsize = self.options["length"]
        buf = bytearray(bufsize)
        if not q_remove_head(self.q, buf, bufsize):
            self.error("Failed to remove head")
            self.show_queue()
            return False
        removed = bytes(buf).split(b"\0", 1)[0].decode("utf-8", errors="replace")
        self.say(f"Removed {removed} from queue")
        ok = True
        if expected is not None and removed != expected:
            ok = self.error(f"Removed value {removed} != expected value {expected}")
        self.show_queue()
        return ok

    def do_rhq(self, args: List[str]) -> bool:
        before = q_size(self.q)
        q_remove_head(self.q, None, 0)
        if before == 0:
            self.error("Failed to remove head")
            self.show_queue()
            return False
        ok = True
        if q_size(self.q) != before - 1:
            ok = self.error(f"Queue size {q_size(self.q)} after removal, expected {before - 1}")
        self.show_queue()
        return ok

    def do_size(self, args: List[str]) -> bool:
        n = self._count(args, 0)
        if self.q is None:
            logger.warning("Calling size on null queue")
        cnt = 0
        for _ in range(n):
            cnt = q_size(self.q)
        self.say(f"Queue size = {cnt}")
        if self.q is not None and cnt != len(self.q.to_list()):
            return self.error(f"Computed queue size as {cnt}, but walked {len(self.q.to_list())} elements")
        return True

    def do_reverse(self, args: List[str]) -> bool:
        if self.q is None:
            logger.warning("Calling reverse on null queue")
        q_reverse(self.q)
        self.show_queue()
        return True

    def do_sort(self, args: List[str]) -> bool:
        if self.q is None:
            logger.warning("Calling sort on null queue")
        q_sort(self.q)
        ok = True
        if self.q is not None:
            values = self.q.to_list()
            for a, b in zip(values, values[1:]):
                if a > b:
                    ok = self.error("Not sorted in ascending order")
                    break
        self.show_queue()
        return ok

    def do_show(self, args: List[str]) -> bool:
        self.show_queue()
        return True

    def do_option(self, args: List[str]) -> bool:
        if not args:
            for name, value in self.options.items():
                self.say(f"\t{name}\t{value}")
            return True
        if len(args) != 2:
            return self.error("option needs a name and a value")
        name, raw = args
        if name not in self.options:
            return self.error(f"Unknown option '{name}'")
        value = int(raw)
        if name == "fail" and not 0 <= value <= 100:
            return self.error(f"fail must be a percentage, got {value}")
        if name == "length" and value < 1:
            return self.error(f"length must be at least 1, got {value}")
        self.options[name] = value
        if name == "verbose":
            logging.getLogger().setLevel(VERBOSE_LEVELS.get(value, logging.DEBUG))
        return True

    def do_source(self, args: List[str]) -> bool:
        if len(args) != 1:
            return self.error("source needs a file name")
        try:
            with open(args[0]) as f:
                self.run(f)
        except OSError as e:
            return self.error(f"Could not open source file '{args[0]}': {e}")
        return True

    def do_help(self, args: List[str]) -> bool:
        self.say("Commands:")
        for name, (_, usage) in self.commands.items():
            self.say(f"\t{name}\t{usage}")
        self.say("Options:")
        for name, value in self.options.items():
            self.say(f"\t{name}\t{value}")
        return True

    def do_quit(self, args: List[str]) -> bool:
        self.stopped = True
        return True

    # ---- driver ----
    def run_line(self, line: str) -> bool:
        """Run one command line. Returns False once `quit` is seen."""
        try:
            words = shlex.split(line, comments=True)
        except ValueError as e:
            self.error(f"Could not parse '{line.strip()}': {e}")
            return True
        if not words:
            return True
        if self.options["echo"]:
            self.say(f"cmd> {' '.join(words)}")
        name, args = words[0], words[1:]
        if name not in self.commands:
            self.error(f"Unknown command '{name}'")
            return True
        handler, _ = self.commands[name]
        logger.debug("Running %s %s", name, args)
        try:
            handler(args)
        except ValueError as e:
            self.error(f"Bad arguments to {name}: {e}")
        return not self.stopped

    def run(self, stream: TextIO) -> bool:
        for line in stream:
            if not self.run_line(line):
                return False
        return True

    def finish(self):
        if self.q is not None:
            q_free(self.q)
            self.q = None


# ───────────────────────── entry ─────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=VERBOSE_LEVELS[DEFAULT_OPTIONS["verbose"]],
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    interp = Interpreter()
    if argv:
        try:
            with open(argv[0]) as f:
                interp.run(f)
        except OSError as e:
            print(f"Failed to open {argv[0]}: {e}", file=sys.stderr)
            return 2
    else:
        interp.run(sys.stdin)
    interp.finish()
    if interp.errors:
        print_section(f"errors={interp.errors}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
