"""Best-effort repair of truncated JSON documents returned by language models.

The repairer scans the text once with a small state machine (a stack of open
containers, each with the token it expects next) and remembers the last
position where the document could be closed cleanly. When the text ends early
or hits something it does not understand, the document is cut back to that
position and the open containers are closed in stack order.
"""

import json
import re
from dataclasses import dataclass
from typing import Optional

_WHITESPACE = " \t\n\r"
_VALUE_DELIMITERS = _WHITESPACE + ",]}"
_LITERALS = ("true", "false", "null")
_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
# Backslash run at the end of a truncated string, optionally with a partial \uXXXX
_PARTIAL_ESCAPE_RE = re.compile(r"(\\+)(u[0-9a-fA-F]{0,3})?$")

# What the innermost open container expects next
_KEY_OR_END = "key_or_end"
_KEY = "key"
_COLON = "colon"
_VALUE = "value"
_VALUE_OR_END = "value_or_end"
_COMMA_OR_END = "comma_or_end"

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class _Frame:
    closer: str
    expect: str


class _Repairer:
    def __init__(self, text: str, start: int):
        self.text = text
        self.start = start
        self.stack: list[_Frame] = []
        self.safe_end = start
        self.safe_closers: list[str] = []
        self.open_string_at: Optional[int] = None
        self.complete_end: Optional[int] = None

    def run(self) -> str:
        self._scan()
        text = self.text
        if self.complete_end is not None:
            return text[self.start : self.complete_end]
        if self.open_string_at is not None:
            tail = text[self.start :]
            match = _PARTIAL_ESCAPE_RE.search(tail)
            if match and len(match.group(1)) % 2 == 1:
                tail = tail[: match.end(1) - 1]
            closers = "".join(reversed([frame.closer for frame in self.stack]))
            return tail + '"' + closers
        return text[self.start : self.safe_end] + "".join(reversed(self.safe_closers))

    def _mark_safe(self, position: int) -> None:
        self.safe_end = position
        self.safe_closers = [frame.closer for frame in self.stack]

    def _value_done(self, position: int) -> None:
        self.stack[-1].expect = _COMMA_OR_END
        self._mark_safe(position)

    def _string_end(self, position: int) -> Optional[int]:
        """Index just past the closing quote of the string at ``position``."""
        text, n = self.text, len(self.text)
        j = position + 1
        while j < n:
            ch = text[j]
            if ch == "\\":
                j += 2
                continue
            if ch == '"':
                return j + 1
            j += 1
        return None

    def _bare_token_end(self, position: int) -> Optional[int]:
        """End of a complete number or literal at ``position``, if there is one."""
        text = self.text
        end = None
        for literal in _LITERALS:
            if text.startswith(literal, position):
                end = position + len(literal)
                break
        if end is None:
            match = _NUMBER_RE.match(text, position)
            if match is None:
                return None
            end = match.end()
        if end < len(text) and text[end] not in _VALUE_DELIMITERS:
            return None
        return end

    def _scan(self) -> None:
        text, n = self.text, len(self.text)
        i = self.start
        while i < n:
            ch = text[i]
            if ch in _WHITESPACE:
                i += 1
                continue

            frame = self.stack[-1] if self.stack else None
            expect = frame.expect if frame else _VALUE

            if ch in "}]" and expect in (_KEY_OR_END, _VALUE_OR_END, _COMMA_OR_END):
                if ch != frame.closer:
                    return
                self.stack.pop()
                i += 1
                if not self.stack:
                    self.complete_end = i
                    return
                self._value_done(i)
                continue

            if expect in (_VALUE, _VALUE_OR_END):
                if ch in _CLOSERS:
                    self.stack.append(
                        _Frame(_CLOSERS[ch], _KEY_OR_END if ch == "{" else _VALUE_OR_END)
                    )
                    i += 1
                    self._mark_safe(i)
                    continue
                if ch == '"':
                    end = self._string_end(i)
                    if end is None:
                        self.open_string_at = i
                        return
                    i = end
                    self._value_done(i)
                    continue
                end = self._bare_token_end(i)
                if end is None:
                    return
                i = end
                self._value_done(i)
                continue

            if expect in (_KEY, _KEY_OR_END):
                if ch != '"':
                    return
                end = self._string_end(i)
                if end is None:
                    return
                i = end
                frame.expect = _COLON
                continue

            if expect == _COLON:
                if ch != ":":
                    return
                frame.expect = _VALUE
                i += 1
                continue

            # _COMMA_OR_END
            if ch != ",":
                return
            frame.expect = _KEY if frame.closer == "}" else _VALUE
            i += 1


def repair_json(text: str) -> str:
    """Repair a truncated or slightly malformed JSON object or array.

    Text that already parses is returned unchanged. Otherwise the first
    ``{`` or ``[`` starts the document and:

    - a string cut off in value position is closed,
    - a cut-off key, a dangling ``:`` or a trailing ``,`` is dropped back to
      the last complete element,
    - a trailing number or literal is kept when it is complete,
    - missing ``]``/``}`` are appended in nesting order,
    - anything after the top-level container is discarded.

    Args:
        text: Raw model output

    Returns:
        Repaired JSON text (not guaranteed to parse if the input is hopeless)
    """
    try:
        json.loads(text)
        return text
    except (TypeError, ValueError):
        pass

    if not isinstance(text, str):
        return text

    starts = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    if not starts:
        return text
    return _Repairer(text, min(starts)).run()
