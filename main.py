import functools
import sys

from rich.pretty import pprint

from easyrepl import *


class Counter:
    def __init__(self):
        self.value = 0


@command("Add X to Y")
def add(x: int, y: int):
    print(x + y)


@command
def say(text, times: int):
    """Print TEXT a number of times"""
    for _ in range(times):
        print(text)


def increment(counter, by):
    counter.value += by
    print(counter.value)


@command("Fail in a way no session can recover from")
def boom():
    with critical():
        raise ConnectionError("connection to the reactor lost")


def build(depth=0):
    counter = Counter()

    @command("Open a nested session one level deeper")
    def new():
        build(depth + 1).run()

    return (
        Repl.builder()
        .description(f"Demo REPL (depth {depth})")
        .prompt(f"{depth}> ")
        .add("add", add)
        .add("say", say)
        .add("count", Command(functools.partial(increment, counter), "Increase the shared counter", [Argument("by", type=int)]))
        .add("new", new)
        .add("boom", boom)
        .build()
    )


if __name__ == '__main__':
    configure_logging(verbose="-v" in sys.argv[1:])
    repl = build()
    pprint(repl)
    repl.run()
