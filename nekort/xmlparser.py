"""An event-driven XML parser.

parse_xml() walks the text and calls methods of an events object:

- xml(name, attribs) when a node opens; attribs is a dict of str to str
- done() when a node closes
- pcdata(text) for character data
- cdata(text) for a CDATA section
- comment(text) for a comment or a header such as <?xml ...?>
- doctype(text) for a DOCTYPE declaration
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, Dict, Optional, Union

from nekort.values import NekoError

_CONTEXT = 30
_SPACES = "\n\r\t "


class XmlParseError(NekoError):
    """Raised when the text is not well formed."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(message)
        self.line = line


class _State(Enum):
    IGNORE_SPACES = auto()
    BEGIN = auto()
    BEGIN_NODE = auto()
    TAG_NAME = auto()
    BODY = auto()
    ATTRIB_NAME = auto()
    EQUALS = auto()
    ATTVAL_BEGIN = auto()
    ATTRIB_VAL = auto()
    CHILDREN = auto()
    CLOSE = auto()
    WAIT_END = auto()
    WAIT_END_RET = auto()
    PCDATA = auto()
    HEADER = auto()
    COMMENT = auto()
    DOCTYPE = auto()
    CDATA = auto()


def _is_valid_char(c: str) -> bool:
    return ("a" <= c <= "z" or "A" <= c <= "Z" or "0" <= c <= "9"
            or c in (":", ".", "_", "-"))


def _ascii_fold(s: str) -> bytes:
    return s.encode("utf-8", "surrogateescape").lower()


class _Parser:
    def __init__(self, text: str, events: Any) -> None:
        self.text = text
        self.events = events
        self.line = 0

    def _at(self, i: int) -> str:
        return self.text[i] if i < len(self.text) else ""

    def _matches(self, p: int, word: str) -> bool:
        """Case-insensitive match of word at position p."""
        return all(self._at(p + k) in (ch.upper(), ch.lower()) and self._at(p + k) != ""
                   for k, ch in enumerate(word))

    def _error(self, p: int, msg: str) -> XmlParseError:
        rest = self.text[p:]
        parts = ["Xml parse error : ", msg, " at line ", str(self.line), " : "]
        if p != 0:
            parts.append("...")
        parts.append(rest[:_CONTEXT])
        if len(rest) > _CONTEXT:
            parts.append("...")
        if not rest:
            parts.append("<eof>")
        return XmlParseError("".join(parts), self.line)

    def _emit(self, name: str, *args: Any) -> None:
        getattr(self.events, name)(*args)

    def parse(self, p: int, parent: Optional[str]) -> int:
        """Parse from p; return the position of the closing '>' of parent."""
        S = _State
        text = self.text
        end = len(text)
        state = S.BEGIN
        next_state = S.BEGIN
        aname = ""
        attribs: Dict[str, str] = {}
        nodename = ""
        start = p
        nsubs = 0
        nbrackets = 0
        while p < end:
            c = text[p]
            if state is S.IGNORE_SPACES:
                if c not in _SPACES:
                    state = next_state
                    continue
            elif state is S.BEGIN:
                if c == "<":
                    state, next_state = S.IGNORE_SPACES, S.BEGIN_NODE
                else:
                    start = p
                    state = S.PCDATA
                    continue
            elif state is S.PCDATA:
                if c == "<":
                    self._emit("pcdata", text[start:p])
                    nsubs += 1
                    state, next_state = S.IGNORE_SPACES, S.BEGIN_NODE
            elif state is S.CDATA:
                if c == "]" and self._at(p + 1) == "]" and self._at(p + 2) == ">":
                    self._emit("cdata", text[start:p])
                    nsubs += 1
                    p += 2
                    state = S.BEGIN
            elif state is S.BEGIN_NODE:
                if c == "!":
                    if self._at(p + 1) == "[":
                        p += 2
                        if not (self._matches(p, "CDATA") and self._at(p + 5) == "["):
                            raise self._error(p, "Expected <![CDATA[")
                        p += 5
                        state = S.CDATA
                        start = p + 1
                    elif self._at(p + 1) in ("D", "d") and self._at(p + 1) != "":
                        if not self._matches(p + 2, "OCTYPE"):
                            raise self._error(p, "Expected <!DOCTYPE")
                        p += 7
                        state = S.DOCTYPE
                        start = p + 1
                    else:
                        if self._at(p + 1) != "-" or self._at(p + 2) != "-":
                            raise self._error(p, "Expected <!--")
                        p += 2
                        state = S.COMMENT
                        start = p + 1
                elif c == "?":
                    state = S.HEADER
                    start = p
                elif c == "/":
                    if parent is None:
                        raise self._error(p, "Expected node name")
                    start = p + 1
                    state, next_state = S.IGNORE_SPACES, S.CLOSE
                else:
                    state = S.TAG_NAME
                    start = p
                    continue
            elif state is S.TAG_NAME:
                if not _is_valid_char(c):
                    if p == start:
                        raise self._error(p, "Expected node name")
                    nodename = text[start:p]
                    attribs = {}
                    state, next_state = S.IGNORE_SPACES, S.BODY
                    continue
            elif state is S.BODY:
                if c == "/":
                    state = S.WAIT_END
                    nsubs += 1
                    self._emit("xml", nodename, attribs)
                elif c == ">":
                    state = S.CHILDREN
                    nsubs += 1
                    self._emit("xml", nodename, attribs)
                else:
                    state = S.ATTRIB_NAME
                    start = p
                    continue
            elif state is S.ATTRIB_NAME:
                if not _is_valid_char(c):
                    if start == p:
                        raise self._error(p, "Expected attribute name")
                    aname = text[start:p]
                    if aname in attribs:
                        raise self._error(p, "Duplicate attribute")
                    state, next_state = S.IGNORE_SPACES, S.EQUALS
                    continue
            elif state is S.EQUALS:
                if c != "=":
                    raise self._error(p, "Expected =")
                state, next_state = S.IGNORE_SPACES, S.ATTVAL_BEGIN
            elif state is S.ATTVAL_BEGIN:
                if c not in ('"', "'"):
                    raise self._error(p, 'Expected "')
                state = S.ATTRIB_VAL
                start = p
            elif state is S.ATTRIB_VAL:
                if c == text[start]:
                    attribs[aname] = text[start + 1:p]
                    state, next_state = S.IGNORE_SPACES, S.BODY
            elif state is S.CHILDREN:
                p = self.parse(p, nodename)
                start = p
                state = S.BEGIN
            elif state is S.WAIT_END:
                if c != ">":
                    raise self._error(p, "Expected >")
                self._emit("done")
                state = S.BEGIN
            elif state is S.WAIT_END_RET:
                if c != ">":
                    raise self._error(p, "Expected >")
                if nsubs == 0:
                    self._emit("pcdata", "")
                self._emit("done")
                return p
            elif state is S.CLOSE:
                if not _is_valid_char(c):
                    if start == p:
                        raise self._error(p, "Expected node name")
                    assert parent is not None
                    if _ascii_fold(parent) != _ascii_fold(text[start:p]):
                        raise self._error(p, "Expected </" + parent + ">")
                    state, next_state = S.IGNORE_SPACES, S.WAIT_END_RET
                    continue
            elif state is S.COMMENT:
                if c == "-" and self._at(p + 1) == "-" and self._at(p + 2) == ">":
                    self._emit("comment", text[start:p])
                    p += 2
                    state = S.BEGIN
            elif state is S.DOCTYPE:
                if c == "[":
                    nbrackets += 1
                elif c == "]":
                    nbrackets -= 1
                elif c == ">" and nbrackets == 0:
                    self._emit("doctype", text[start:p])
                    state = S.BEGIN
            elif state is S.HEADER:
                if c == "?" and self._at(p + 1) == ">":
                    p += 1
                    self._emit("comment", text[start:p])
                    state = S.BEGIN
            p += 1
            if p < end and text[p] == "\n":
                self.line += 1
        if state is S.BEGIN:
            start = p
            state = S.PCDATA
        if parent is None and state is S.PCDATA:
            if p != start or nsubs == 0:
                self._emit("pcdata", text[start:p])
            return p
        raise self._error(p, "Unexpected end")


def parse_xml(text: Union[str, bytes, bytearray], events: Any) -> None:
    """Parse text, calling the methods of events for each element found."""
    if isinstance(text, (bytes, bytearray)):
        raw = bytes(text).split(b"\0", 1)[0]
        if raw.startswith(b"\xef\xbb\xbf"):
            raw = raw[3:]
        text = raw.decode("utf-8", "surrogateescape")
    elif isinstance(text, str):
        text = text.split("\0", 1)[0]
        if text.startswith("\ufeff"):
            text = text[1:]
    else:
        raise NekoError("parse_xml")
    if events is None:
        raise NekoError("parse_xml")
    _Parser(text, events).parse(0, None)