# Caddyfile tokenizer and block parser

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from ast_struct import Directive, Document, SiteBlock
from caddyfile_config import DEFAULTS, EngineConfig

logger = logging.getLogger(__name__)

# -----------------------------
# Tokenization

class TokType(Enum):
    WORD        = auto()
    QUOTED      = auto()   # "..." or '...', quotes kept in the value
    COMMENT     = auto()   # # ... up to end of line
    LBRACE      = auto()   # {
    RBRACE      = auto()   # }
    PLACEHOLDER = auto()   # {path}, {$ENV}, {http.request.host}
    NEWLINE     = auto()
    EOF         = auto()


@dataclass
class Token:
    type: TokType
    value: str
    line: int
    col: int
    start: int = 0          # offsets into the source text
    end: int = 0
    terminated: bool = True  # False only for a quote left open at end of line


# tokens that can be a directive name, an argument or an address
ARG_TYPES = (TokType.WORD, TokType.QUOTED, TokType.PLACEHOLDER)

WHITESPACE = " \t\r"
QUOTES = ('"', "'")


def tokenize(text: str) -> List[Token]:
    """
    Lenient tokenizer for Caddyfile text.

    Never raises: an unterminated quote becomes a QUOTED token with
    terminated=False and it is up to the parser to complain, so the same
    function also works on half-typed editor buffers.

    Braces are only structural when they stand alone. A run like `{path}`
    is a PLACEHOLDER, and `/api/{path}` is an ordinary WORD.
    """
    tokens: List[Token] = []
    i = 0
    line = 1
    line_start = 0
    n = len(text)

    def add(tt: TokType, start: int, end: int, terminated: bool = True):
        tokens.append(
            Token(tt, text[start:end], line, start - line_start + 1, start, end, terminated)
        )

    while i < n:
        ch = text[i]

        # newline
        if ch == "\n":
            add(TokType.NEWLINE, i, i + 1)
            i += 1
            line += 1
            line_start = i
            continue

        # spaces / tabs / CR
        if ch in WHITESPACE:
            i += 1
            continue

        # comment, only at the start of a token
        if ch == "#":
            start = i
            while i < n and text[i] != "\n":
                i += 1
            end = i
            if end > start and text[end - 1] == "\r":
                end -= 1
            add(TokType.COMMENT, start, end)
            continue

        # quoted string "..." / '...'
        if ch in QUOTES:
            start = i
            i += 1
            closed = False
            while i < n and text[i] != "\n":
                if text[i] == "\\" and i + 1 < n and text[i + 1] != "\n":
                    i += 2
                    continue
                if text[i] == ch:
                    i += 1
                    closed = True
                    break
                i += 1
            end = i
            if not closed and end > start and text[end - 1] == "\r":
                end -= 1
            add(TokType.QUOTED, start, end, terminated=closed)
            continue

        # bare run up to the next whitespace
        start = i
        while i < n and text[i] not in WHITESPACE and text[i] != "\n":
            i += 1
        value = text[start:i]

        if value == "{":
            add(TokType.LBRACE, start, i)
        elif value == "}":
            add(TokType.RBRACE, start, i)
        elif len(value) > 2 and value[0] == "{" and value[-1] == "}":
            add(TokType.PLACEHOLDER, start, i)
        else:
            add(TokType.WORD, start, i)

    tokens.append(Token(TokType.EOF, "", line, i - line_start + 1, i, i))
    return tokens


def split_words(text: str) -> List[str]:
    """Values of every non-comment token in `text`, braces and newlines included."""
    return [
        t.value
        for t in tokenize(text)
        if t.type not in (TokType.COMMENT, TokType.EOF)
    ]


def has_comment(text: str) -> bool:
    return any(t.type == TokType.COMMENT for t in tokenize(text))


# -----------------------------
# Parser

class ParseError(Exception):
    """Structural error in Caddyfile text (unbalanced braces, bad header, ...)."""

    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None):
        self.message = message
        self.line = line
        self.col = col
        location = f" at line {line}, col {col}" if line is not None else ""
        super().__init__(f"{message}{location}")


class Parser:
    def __init__(self, tokens: List[Token], text: str, config: EngineConfig = DEFAULTS):
        self.tokens = tokens
        self.text = text
        self.pos = 0
        self.config = config

    # basic utilities
    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.type != TokType.EOF:
            self.pos += 1
        return tok

    def skip_trivia(self):
        while self.peek().type in (TokType.NEWLINE, TokType.COMMENT):
            self.pos += 1

    def _check_quoted(self, tok: Token):
        if not tok.terminated:
            raise ParseError(f"Unterminated quoted string {tok.value!r}", tok.line, tok.col)

    # top level
    def parse_document(self) -> Document:
        doc = Document()
        seen_global = False

        while True:
            self.skip_trivia()
            tok = self.peek()
            if tok.type == TokType.EOF:
                break
            if tok.type == TokType.RBRACE:
                raise ParseError("Unexpected '}' with no open block", tok.line, tok.col)

            # a bare '{' at the start of a line opens the global options block
            if tok.type == TokType.LBRACE:
                if seen_global or doc.site_blocks:
                    raise ParseError(
                        "Global options block must be the first block in the file",
                        tok.line,
                        tok.col,
                    )
                self.advance()
                doc.global_options = self.parse_body(tok)
                seen_global = True
                continue

            doc.site_blocks.append(self.parse_site_block())

        return doc

    def parse_site_block(self) -> SiteBlock:
        """
        Parse:

          example.com, www.example.com {
            @id mysite
            reverse_proxy localhost:8080
          }

        A header ending with ',' continues on the next line.
        """
        first = self.peek()
        addresses: List[str] = []
        header: List[str] = []

        while True:
            tok = self.peek()
            if tok.type == TokType.LBRACE:
                open_tok = self.advance()
                break
            if tok.type in ARG_TYPES:
                self._check_quoted(tok)
                header.append(tok.value)
                addresses.extend(a.strip() for a in tok.value.split(",") if a.strip())
                self.advance()
                continue
            if tok.type == TokType.COMMENT:
                self.advance()
                continue
            if tok.type == TokType.NEWLINE and header and header[-1].endswith(","):
                self.advance()
                continue
            raise ParseError(
                f"Site block header {' '.join(header)!r} has no opening '{{'",
                first.line,
                first.col,
            )

        if not addresses:
            raise ParseError("Site block header has no addresses", first.line, first.col)

        directives = self.parse_body(open_tok)

        tag = None
        if directives and directives[0].name == self.config.tag_directive and directives[0].args:
            tag = directives[0].args[0]
            directives = directives[1:]

        return SiteBlock(addresses=addresses, directives=directives, tag=tag)

    def parse_body(self, open_tok: Token) -> List[Directive]:
        """Directives up to and including the '}' matching `open_tok`."""
        directives: List[Directive] = []

        while True:
            self.skip_trivia()
            tok = self.peek()
            if tok.type == TokType.RBRACE:
                self.advance()
                return directives
            if tok.type == TokType.EOF:
                raise ParseError("Unclosed block: '{' is never closed", open_tok.line, open_tok.col)
            if tok.type == TokType.LBRACE:
                raise ParseError("Unexpected '{' where a directive was expected", tok.line, tok.col)
            directives.append(self.parse_directive())

    def parse_directive(self) -> Directive:
        """
        name arg arg ...            (ends at newline or at a '}' on the same line)
        name arg arg ... {          (nested body follows)
        """
        name_tok = self.advance()
        self._check_quoted(name_tok)

        arg_toks: List[Token] = []
        while self.peek().type in ARG_TYPES:
            tok = self.advance()
            self._check_quoted(tok)
            arg_toks.append(tok)

        last = arg_toks[-1] if arg_toks else name_tok
        directive = Directive(name=name_tok.value, args=[t.value for t in arg_toks])

        nxt = self.peek()
        if nxt.type == TokType.LBRACE:
            self.advance()
            directive.raw = self.text[name_tok.start:last.end]
            directive.block = self.parse_body(nxt)
        elif nxt.type == TokType.COMMENT:
            # keep an inline comment with the line it annotates
            directive.raw = self.text[name_tok.start:nxt.end]
        else:
            directive.raw = self.text[name_tok.start:last.end]

        return directive


# -----------------------------
# Public entry

def parse_caddyfile(text: str, config: EngineConfig = DEFAULTS) -> Document:
    tokens = tokenize(text)
    parser = Parser(tokens, text, config=config)
    document = parser.parse_document()
    logger.debug(
        "parsed %d token(s) into %d global option(s) and %d site block(s)",
        len(tokens),
        len(document.global_options),
        len(document.site_blocks),
    )
    return document
