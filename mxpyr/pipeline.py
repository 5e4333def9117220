""" the objects handed to macro implementations

a pipeline pairs a source reader with a sink writer for the duration
of exactly one macro invocation, it is never retained afterward

    idle -> trigger-matched -> reading <-> writing -> consumed -> success
                                                               -> failure
"""

import logging

from .errors import MxpyrError, MacroExpansionFailure
from .nodes import Ast
from .readers import ListReader, ListWriter
from .tokens import split

log = logging.getLogger(__name__)

IDLE = 'idle'
TRIGGERED = 'trigger-matched'
READING = 'reading'
WRITING = 'writing'
CONSUMED = 'consumed'
SUCCESS = 'success'
FAILURE = 'failure'

TERMINAL = SUCCESS, FAILURE


class Pipeline:

    def __init__(self, source, sink, context=None, macro=None, point=None):
        self.source = source
        self.sink = sink
        self.context = context
        self.macro = macro
        self.point = point
        self.state = IDLE

    def _active(self, state):
        if self.state in TERMINAL:
            raise MacroExpansionFailure(
                f'pipeline used after its invocation ended in {self.state}',
                macro=self.macro, point=self.point)
        self.state = state

    def read(self):
        self._active(READING)
        return self.source.read()

    def read_many(self, amount):
        self._active(READING)
        return self.source.read_many(amount)

    def peek(self):
        self._active(READING)
        return self.source.peek()

    def peek_nth(self, n):
        self._active(READING)
        return self.source.peek_nth(n)

    def peek_many(self, amount, start=0):
        self._active(READING)
        return self.source.peek_many(amount, start)

    def discard(self, amount=1):
        self._active(READING)
        return self.source.discard(amount)

    def skip_until(self, matches):
        self._active(READING)
        return self.source.skip_until(matches)

    @property
    def is_finished(self):
        return self.source.is_finished

    def write(self, item):
        self._active(WRITING)
        self.sink.write(item)

    def write_many(self, items):
        for item in items:
            self.write(item)

    def fail(self, message):
        """ for handlers, raise the failure of this invocation """
        raise MacroExpansionFailure(message, macro=self.macro, point=self.point)

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.macro} {self.state}>'


class SymmetricPipeline(Pipeline):
    """ source and sink share an item type so input can be forwarded as is """

    def passthrough_many(self, amount):
        items = self.read_many(amount)
        self.write_many(items)
        return len(items)

    def passthrough_until(self, matches):
        """ forward until matches holds for the next item, False at the end """
        while True:
            item = self.peek()
            if item is None:
                return False
            elif matches(item):
                return True

            self.write(self.read())

    def passthrough_until_matches(self, item):
        return self.passthrough_until(lambda i: i == item)

    def passthrough_rest(self):
        count = 0
        while not self.source.is_finished:
            count += self.passthrough_many(1)

        return count


class CharPipeline(SymmetricPipeline):
    """ handed to reader macros, the source is the rest of the character stream

    characters written to the sink are lexed again without any macro
    dispatch, token trees and asts written to it are emitted as they are """

    whitespace = ' \t\r\n'

    def __init__(self, source, sink, context=None, macro=None, point=None, lexer=None):
        super().__init__(source, sink, context, macro, point)
        self.lexer = lexer
        self._tokens = None

    def tokens(self):
        """ the token trees following the trigger

        always the same reader, trees it lexed that the macro did not
        read go back to the enclosing stage after the macro output """
        if self._tokens is None:
            self._tokens = self.lexer.spawn()
        return self._tokens

    def parser(self):
        return self.context.parser(self.tokens())

    def parse_expression(self):
        return self.parser().parse_expression()

    def skip_space(self):
        """ discard whitespace and line comments, True if anything is left """
        self._active(READING)
        chars = self.source
        while True:
            char = chars.peek()
            if char is None:
                return False
            elif char in self.whitespace:
                chars.discard()
            elif chars.peek_text(2) == '//':
                chars.skip_until(lambda c: c == '\n')
            else:
                return True

    def read_word(self):
        """ the identifier at the next character, empty if there is none """
        self._active(READING)
        chars = self.source
        count = 0
        while True:
            char = chars.peek_nth(count)
            if char is not None and (char.isalnum() or char == '_'):
                count += 1
            else:
                break

        return chars.read_text(count)


class TokenPipeline(SymmetricPipeline):
    """ handed to procedural macros, the source holds exactly one token tree """

    def tree(self):
        return self.peek()

    def arguments(self, separator=','):
        """ the single tree split at separators if it is a parenthesized group """
        tree = self.read()
        if tree is None:
            return []
        elif tree.is_group('('):
            return split(tree.trees, separator)
        else:
            return [[tree]]

    def parse(self, trees):
        return self.context.parser(ListReader(trees)).parse_expression_only()


class AsymmetricPipeline(Pipeline):
    """ no passthrough helpers, input and output are different kinds of things """


class AstPipeline(AsymmetricPipeline):
    """ one syntax parameter of a pattern macro """

    def __init__(self, argument, context=None, macro=None, name=None, sink=None):
        super().__init__(ListReader([argument]), sink if sink is not None else ListWriter(Ast),
                         context, macro)
        self.name = name
        self.argument = argument


class AnnotationPipeline(AsymmetricPipeline):
    """ explicit argument trees followed by the annotated item

    a standalone annotation has no item and replaces itself with
    whatever it writes """

    def __init__(self, arguments, item, sink, context=None, macro=None, point=None):
        items = list(arguments) + ([item] if item is not None else [])
        super().__init__(ListReader(items), sink, context, macro, point)
        self.arguments = list(arguments)
        self.item = item

    @property
    def standalone(self):
        return self.item is None

    def parse_arguments(self):
        return [self.context.parser(ListReader(trees)).parse_expression_only()
                for trees in self.arguments]


class OrderedSinks:
    """ one sink per declared pipeline, emission follows declaration order """

    def __init__(self, names, accepts=Ast):
        self.names = tuple(names)
        self.sinks = {name: ListWriter(accepts) for name in self.names}

    def __getitem__(self, name):
        return self.sinks[name]

    def emitted(self):
        return [item for name in self.names for item in self.sinks[name]]


def _result_items(result):
    if result is None:
        return []
    elif isinstance(result, (list, tuple)):
        return list(result)
    else:
        return [result]


def invoke(pipe, handler, *args):
    """ run one macro invocation through its states

    a returned value is written after anything the handler wrote itself,
    readtable pushes made by a failing handler are unwound before its
    caller sees the failure """
    if pipe.state != IDLE:
        raise MacroExpansionFailure(
            f'pipeline invoked again after it reached {pipe.state}',
            macro=pipe.macro, point=pipe.point)

    pipe.state = TRIGGERED
    log.debug('invoke %s at %s', pipe.macro, pipe.point)
    try:
        with pipe.context.readtables.guard():
            result = handler(pipe, *args)
            for item in _result_items(result):
                pipe.write(item)
    except MxpyrError as e:
        pipe.state = FAILURE
        raise e.at(pipe.point, pipe.macro)
    except Exception as e:
        pipe.state = FAILURE
        raise MacroExpansionFailure(
            f'{e.__class__.__name__}: {e}', macro=pipe.macro, point=pipe.point) from e

    pipe.state = CONSUMED
    pipe.state = SUCCESS
    return pipe.sink
