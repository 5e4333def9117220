""" tokens and token trees """

from .errors import UnbalancedGrouping

# token kinds
IDENTIFIER = 'identifier'
NUMBER = 'number'
STRING = 'string'
BOOLEAN = 'boolean'
OPERATOR = 'operator'
SEPARATOR = 'separator'
OPEN = 'open'
CLOSE = 'close'
EMBEDDED = 'embedded'  # an ast written by a reader macro

PAIRS = {
    '(': ')',
    '[': ']',
    '{': '}',
}

CLOSERS = {v: k for k, v in PAIRS.items()}

SEPARATORS = ',;'

# longest first so that maximal munch is a simple scan
OPERATORS = sorted(
    ('->', '==', '!=', '<=', '>=', '&&', '||',
     '+', '-', '*', '/', '%', '<', '>', '=', '.', ':', '!', '@', '|', '&', '^', '~', '?'),
    key=len, reverse=True)


class Token:

    __slots__ = ('kind', 'text', 'value', 'point', 'trivia')

    def __init__(self, kind, text, value=None, point=None, trivia=''):
        self.kind = kind
        self.text = text
        self.value = text if value is None else value
        self.point = point
        self.trivia = trivia

    @property
    def adjacent(self):
        """ nothing separates this token from whatever came before it """
        return not self.trivia

    def with_trivia(self, trivia):
        return self.__class__(self.kind, self.text, self.value, self.point, trivia + self.trivia)

    def __eq__(self, other):
        return (type(self) == type(other) and
                self.kind == other.kind and
                self.text == other.text and
                self.value == other.value)

    def __hash__(self):
        return hash((self.kind, self.text))

    def __repr__(self):
        if self.kind == EMBEDDED:
            return f'<tk {self.kind} {self.value!r}>'
        return f'<tk {self.kind} {self.text!r}>'


class TokenTree:

    def is_identifier(self, name=None):
        return False

    def is_operator(self, text=None):
        return False

    def is_separator(self, text=None):
        return False

    def is_group(self, delimiter=None):
        return False

    def is_embedded(self):
        return False


class Scalar(TokenTree):

    __slots__ = ('token',)

    def __init__(self, token):
        self.token = token

    @property
    def point(self):
        return self.token.point

    @property
    def adjacent(self):
        return self.token.adjacent

    @property
    def kind(self):
        return self.token.kind

    @property
    def value(self):
        return self.token.value

    def _is(self, kind, text):
        return self.token.kind == kind and (text is None or self.token.text == text)

    def is_identifier(self, name=None):
        return self._is(IDENTIFIER, name)

    def is_operator(self, text=None):
        return self._is(OPERATOR, text)

    def is_separator(self, text=None):
        return self._is(SEPARATOR, text)

    def is_embedded(self):
        return self.token.kind == EMBEDDED

    def with_trivia(self, trivia):
        return self.__class__(self.token.with_trivia(trivia))

    def __eq__(self, other):
        return type(self) == type(other) and self.token == other.token

    def __hash__(self):
        return hash((self.__class__, self.token))

    def __repr__(self):
        return f'<sc {self.token!r}>'


class Group(TokenTree):
    """ a balanced group, mismatched delimiters never make it this far """

    __slots__ = ('open', 'trees', 'close')

    def __init__(self, open, trees, close):
        if open.text not in PAIRS:
            raise UnbalancedGrouping(f'{open.text!r} does not open a group',
                                     point=open.point)
        if close is None:
            raise UnbalancedGrouping(f'{open.text!r} is never closed',
                                     point=open.point)
        if PAIRS[open.text] != close.text:
            raise UnbalancedGrouping(
                f'{open.text!r} closed by {close.text!r}', point=close.point)

        self.open = open
        self.trees = tuple(trees)
        self.close = close

    @property
    def delimiter(self):
        return self.open.text

    @property
    def point(self):
        return self.open.point

    @property
    def adjacent(self):
        return self.open.adjacent

    def is_group(self, delimiter=None):
        return delimiter is None or self.open.text == delimiter

    def with_trivia(self, trivia):
        return self.__class__(self.open.with_trivia(trivia), self.trees, self.close)

    def __eq__(self, other):
        return (type(self) == type(other) and
                self.open == other.open and
                self.trees == other.trees and
                self.close == other.close)

    def __hash__(self):
        return hash((self.__class__, self.open, self.trees))

    def __repr__(self):
        return f'<gr {self.open.text}{list(self.trees)!r}{self.close.text}>'


def untokenize(trees):
    """ render token trees back into source text, trivia included """
    out = []
    def render(tree):
        if isinstance(tree, Group):
            out.append(tree.open.trivia + tree.open.text)
            for t in tree.trees:
                render(t)
            out.append(tree.close.trivia + tree.close.text)
        else:
            token = tree.token
            out.append(token.trivia + token.text)

    for tree in trees:
        render(tree)

    return ''.join(out)


def is_identifier_start(char):
    return char is not None and (char.isalpha() or char == '_')


def is_identifier_continue(char):
    return char is not None and (char.isalnum() or char == '_')


def split(trees, separator=','):
    """ cut a sequence of trees at top level separators, empty trailing parts are dropped """
    parts = [[]]
    for tree in trees:
        if tree.is_separator(separator):
            parts.append([])
        else:
            parts[-1].append(tree)

    if not parts[-1]:
        parts.pop()

    return parts
