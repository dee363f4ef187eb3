from typing import NoReturn, Optional, FrozenSet

from debstanza.exceptions import GrammarError

WHITESPACE = frozenset(" \t\r\n")


class Cursor:
    """A peekable character cursor over a string

    The grammars parsed with this are LL(1), so one character of lookahead
    is all we need.
    """

    __slots__ = ("text", "pos")

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> Optional[str]:
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def next(self) -> Optional[str]:
        c = self.peek()
        if c is not None:
            self.pos += 1
        return c

    def expect(self, expected: str, what: str) -> None:
        c = self.next()
        if c is None:
            self.error(f"reached end of input before {what} finished")
        if c != expected:
            self.error(f'expected "{expected}" in {what}, got "{c}"')

    def skip_whitespace(self) -> None:
        text = self.text
        pos = self.pos
        while pos < len(text) and text[pos] in WHITESPACE:
            pos += 1
        self.pos = pos

    def take_until(self, stop_chars: FrozenSet[str]) -> str:
        """Consume characters up to (but excluding) a stop character or the end"""
        text = self.text
        start = self.pos
        pos = start
        while pos < len(text) and text[pos] not in stop_chars:
            pos += 1
        self.pos = pos
        return text[start:pos]

    def error(self, msg: str) -> NoReturn:
        raise GrammarError(f'{msg} (at position {self.pos} in "{self.text}")')
