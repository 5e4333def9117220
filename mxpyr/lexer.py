""" characters to token trees

reader macros are looked up only at the start of a token, never in
the middle of one, so a tool that knows where tokens start can always
re-lex a file without running any macro """

import logging

from .errors import ParseError, UnbalancedGrouping, UnknownTrigger
from .nodes import Ast
from .pipeline import CharPipeline, invoke
from .readers import Reader, CharReader, ListWriter
from .readtable import READER
from .tokens import (
    Token, TokenTree, Scalar, Group,
    IDENTIFIER, NUMBER, STRING, BOOLEAN, OPERATOR, SEPARATOR, OPEN, CLOSE, EMBEDDED,
    PAIRS, CLOSERS, SEPARATORS, OPERATORS,
    is_identifier_start, is_identifier_continue)

log = logging.getLogger(__name__)

WHITESPACE = ' \t\r\n\f\v'

BOOLEANS = {'True': True, 'False': False}

ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '0': '\0',
    '\\': '\\',
    '"': '"',
}


def _is_digit(char):
    return char is not None and char.isdigit()


class TokenReader(Reader):
    """ a lazy reader of token trees over a character reader

    a nested reader stops in front of a closing delimiter it did not
    open, leaving it for whoever is reading the enclosing group, only
    the reader of a whole source treats a leading #! line as trivia """

    def __init__(self, chars, context, dispatch=True, nested=False, shebang=True):
        super().__init__()
        self.chars = chars
        self.context = context
        self.dispatch = dispatch
        self.nested = nested
        self.shebang = shebang
        self.trailing = ''

    def spawn(self):
        return self.__class__(self.chars, self.context, dispatch=self.dispatch, nested=True,
                              shebang=False)

    def _produce(self):
        trivia = self._trivia()
        char = self.chars.peek()
        if char is None:
            self.trailing = trivia
            return None
        elif char in CLOSERS:
            if self.nested:
                self.trailing = trivia
                return None

            raise UnbalancedGrouping(f'{char!r} closes nothing', point=self.chars.point)

        return self._lex(trivia)

    def _trivia(self):
        chars = self.chars
        out = []
        if self.shebang and chars.consumed == 0 and chars.peek_text(2) == '#!':
            out.extend(self._line())

        while True:
            char = chars.peek()
            if char is None:
                break
            elif char in WHITESPACE:
                out.append(chars.read())
            elif char == '/' and chars.peek_nth(1) == '/':
                out.extend(self._line())
            else:
                break

        return ''.join(out)

    def _line(self):
        out = []
        while True:
            char = self.chars.peek()
            if char is None or char == '\n':
                return out
            out.append(self.chars.read())

    def _lex(self, trivia):
        chars = self.chars
        point = chars.point
        if self.dispatch:
            entry = self.context.readtables.match_reader(chars)
            if entry is not None:
                return self._dispatch(entry, trivia, point)

        char = chars.peek()
        if char in PAIRS:
            return [self._group(trivia, point)]

        token = self._scalar(char, trivia, point)
        return [Scalar(token)]

    def _scalar(self, char, trivia, point):
        chars = self.chars
        if is_identifier_start(char):
            text = self._take(is_identifier_continue)
            if text in BOOLEANS:
                return Token(BOOLEAN, text, BOOLEANS[text], point, trivia)
            return Token(IDENTIFIER, text, point=point, trivia=trivia)

        elif char.isdigit():
            return self._number(trivia, point)

        elif char == '"':
            return self._string(trivia, point)

        elif char in SEPARATORS:
            return Token(SEPARATOR, chars.read(), point=point, trivia=trivia)

        for operator in OPERATORS:
            if chars.peek_text(len(operator)) == operator:
                chars.discard(len(operator))
                return Token(OPERATOR, operator, point=point, trivia=trivia)

        raise UnknownTrigger(f'nothing reads {char!r}', point=point)

    def _take(self, matches):
        chars = self.chars
        count = 0
        while matches(chars.peek_nth(count)):
            count += 1

        return chars.read_text(count)

    def _number(self, trivia, point):
        chars = self.chars
        text = self._take(_is_digit)
        if chars.peek() == '.' and (chars.peek_nth(1) or '').isdigit():
            chars.discard()
            text += '.' + self._take(_is_digit)
            value = float(text)
        else:
            value = int(text)

        if is_identifier_continue(chars.peek()):
            raise ParseError(f'malformed number {text + chars.peek()!r}', point=point)

        return Token(NUMBER, text, value, point, trivia)

    def _string(self, trivia, point):
        chars = self.chars
        raw = [chars.read()]
        value = []
        while True:
            char = chars.read()
            if char is None:
                raise ParseError('string is never terminated', point=point)

            raw.append(char)
            if char == '"':
                break
            elif char == '\\':
                escape = chars.read()
                if escape not in ESCAPES:
                    raise ParseError(f'unknown escape \\{escape}', point=chars.point)
                raw.append(escape)
                value.append(ESCAPES[escape])
            else:
                value.append(char)

        return Token(STRING, ''.join(raw), ''.join(value), point, trivia)

    def _group(self, trivia, point):
        chars = self.chars
        open = Token(OPEN, chars.read(), point=point, trivia=trivia)
        inner = self.spawn()
        with self.context.readtables.extent():
            trees = list(inner)

        close_trivia = inner.trailing
        close_point = chars.point
        char = chars.read()
        close = None if char is None else Token(CLOSE, char, point=close_point, trivia=close_trivia)
        return Group(open, trees, close)

    def _dispatch(self, entry, trivia, point, triggered=True):
        chars = self.chars
        if triggered:
            chars.discard(len(entry.trigger))
        log.debug('reader macro %s at %r', entry.name, point)
        sink = ListWriter((str, TokenTree, Ast))
        pipe = CharPipeline(chars, sink, self.context, entry.name, point, lexer=self)
        invoke(pipe, entry.handler)
        trees = self._relex(sink.items, trivia, point)
        if pipe._tokens is not None:
            # lookahead the macro did not read
            trees.extend(pipe._tokens.unconsumed())

        return trees

    def _relex(self, items, trivia, point):
        """ macro output back to trees, written characters never trigger a macro """
        trees = []
        text = []
        def flush():
            if text:
                source = CharReader(''.join(text), point.name, point.line, point.column)
                trees.extend(self.context.token_reader(source, dispatch=False, shebang=False))
                text.clear()

        for item in items:
            if isinstance(item, str):
                text.append(item)
                continue

            flush()
            if isinstance(item, Ast):
                item = Scalar(Token(EMBEDDED, '', item, point))

            trees.append(item)

        flush()
        if trees and trivia:
            # a copy, trees written by a macro stay as they were written
            trees[0] = trees[0].with_trivia(trivia)

        return trees


def foreign(chars, context, name):
    """ hand the character stream to a named reader macro from position zero

    for sources written in some other syntax entirely, whatever the macro
    leaves unread is lexed as host syntax afterward """
    tables = [context.readtables.current, *context.readtables.named.values()]
    for entry in (e for table in tables for e in table):
        if entry.kind == READER and entry.name == name:
            break
    else:
        raise UnknownTrigger(f'no reader macro named {name!r}', macro=name)

    log.debug('foreign syntax %s', name)
    lexer = context.token_reader(chars)
    lexer._buffer.extend(lexer._dispatch(entry, '', chars.point, triggered=False))
    return lexer
