""" token trees to ast

the host grammar needs exactly one token tree of lookahead, anything
more is the business of the macros it dispatches to """

import logging

from .errors import ParseError, UnknownTrigger
from .nodes import (
    Ast, Identifier, Literal, ListLiteral, Tuple, Call, Lookup,
    UnaryOperator, BinaryOperator, Block, Lambda)
from .pipeline import TokenPipeline, AnnotationPipeline, invoke
from .readers import ListReader, ListWriter
from .readtable import PROCEDURAL, ANNOTATION
from .tokens import TokenTree, NUMBER, STRING, BOOLEAN, IDENTIFIER, EMBEDDED, split

log = logging.getLogger(__name__)

# operator: (precedence, right associative)
BINARY = {
    '=': (1, True),
    '||': (2, False),
    '&&': (3, False),
    '==': (4, False),
    '!=': (4, False),
    '<': (5, False),
    '<=': (5, False),
    '>': (5, False),
    '>=': (5, False),
    '|': (6, False),
    '^': (7, False),
    '&': (8, False),
    '+': (9, False),
    '-': (9, False),
    '*': (10, False),
    '/': (10, False),
    '%': (10, False),
}

UNARY = '-', '!', '~'

LITERALS = NUMBER, STRING, BOOLEAN


def _describe(tree):
    if tree is None:
        return 'end of input'
    elif tree.is_group():
        return f'{tree.delimiter!r} group'
    elif tree.is_embedded():
        return f'macro output {tree.value!r}'
    else:
        return repr(tree.token.text)


class Parser:

    def __init__(self, tokens, context, dispatch=True):
        self.tokens = tokens
        self.context = context
        self.dispatch = dispatch

    def _sub(self, trees):
        return self.__class__(ListReader(trees), self.context, dispatch=self.dispatch)

    def _unexpected(self, tree, expected):
        point = tree.point if tree is not None else None
        return ParseError(f'{expected} expected, found {_describe(tree)}', point=point)

    def split(self, group, separator=','):
        return split(group.trees, separator)

    def parse_unit(self):
        """ every item until the tokens run out """
        items = []
        while True:
            more = self.parse_item()
            if more is None:
                return items

            items.extend(more)

    def parse_item(self):
        """ the items of the next item slot, None at the end

        one slot can hold zero or more items when macros fill it """
        while True:
            tree = self.tokens.peek()
            if tree is None:
                return None
            elif tree.is_separator(';'):
                self.tokens.discard()
            else:
                break

        if tree.is_operator('@'):
            return self.parse_annotation()

        expression = self.parse_expression()
        tree = self.tokens.peek()
        if tree is not None and tree.is_separator(';'):
            self.tokens.discard()
        elif tree is not None and tree.is_separator():
            raise self._unexpected(tree, 'end of item')

        return [expression]

    def parse_expression(self, precedence=0):
        left = self.parse_unary()
        while True:
            tree = self.tokens.peek()
            if tree is None or not tree.is_operator():
                return left

            operator = tree.token.text
            if operator == '->':
                if precedence > 0:
                    return left

                self.tokens.discard()
                left = Lambda(self._parameters(left, tree), self.parse_expression())
                continue

            if operator not in BINARY:
                return left

            binds, right = BINARY[operator]
            if binds < precedence:
                return left

            self.tokens.discard()
            left = BinaryOperator(operator, left,
                                  self.parse_expression(binds if right else binds + 1))

    def parse_expression_only(self):
        """ one expression that must use up every tree """
        expression = self.parse_expression()
        tree = self.tokens.peek()
        if tree is not None:
            raise self._unexpected(tree, 'end of expression')

        return expression

    def parse_unary(self):
        tree = self.tokens.peek()
        if tree is not None and tree.is_operator() and tree.token.text in UNARY:
            self.tokens.discard()
            return UnaryOperator(tree.token.text, self.parse_unary())

        return self.parse_postfix(self.parse_primary())

    def parse_postfix(self, target):
        while True:
            tree = self.tokens.peek()
            if tree is None:
                return target
            elif tree.is_group('(') and tree.adjacent:
                self.tokens.discard()
                target = Call(target, [self.parse_trees(part) for part in split(tree.trees)])
            elif tree.is_operator('.'):
                self.tokens.discard()
                name = self.tokens.read()
                if name is None or not name.is_identifier():
                    raise self._unexpected(name, 'name after .')
                target = Lookup(target, name.value)
            else:
                return target

    def parse_primary(self):
        tree = self.tokens.read()
        if tree is None:
            raise self._unexpected(tree, 'expression')

        elif tree.is_group('('):
            return self._parenthesized(tree)

        elif tree.is_group('['):
            return ListLiteral([self.parse_trees(part) for part in split(tree.trees)])

        elif tree.is_group('{'):
            return self.parse_block(tree)

        elif tree.kind in LITERALS:
            return Literal(tree.value)

        elif tree.kind == EMBEDDED:
            return tree.value

        elif tree.kind == IDENTIFIER:
            entry = (self.context.readtables.lookup(PROCEDURAL, tree.value)
                     if self.dispatch else None)
            if entry is not None:
                return self._procedural(entry, tree)

            return Identifier(tree.value, point=tree.point)

        elif tree.is_operator('@'):
            raise ParseError('annotations only stand in front of items', point=tree.point)

        raise self._unexpected(tree, 'expression')

    def _parenthesized(self, group):
        parts = split(group.trees)
        if len(parts) == 1 and not group.trees[-1].is_separator(','):
            return self.parse_trees(parts[0])

        return Tuple([self.parse_trees(part) for part in parts])

    def _parameters(self, left, arrow):
        if isinstance(left, Identifier):
            return left,
        elif isinstance(left, Tuple) and all(isinstance(i, Identifier) for i in left.items):
            return left.items

        raise ParseError('only names can be lambda parameters', point=arrow.point)

    def parse_trees(self, trees):
        if not trees:
            raise ParseError('empty expression')

        return self._sub(trees).parse_expression_only()

    def parse_block(self, group):
        return Block(self._sub(group.trees).parse_unit())

    def _emitted(self, items):
        """ macro output as items, written trees are parsed without dispatch """
        out = []
        trees = []
        def flush():
            if trees:
                out.extend(Parser(ListReader(trees), self.context, dispatch=False).parse_unit())
                trees.clear()

        for item in items:
            if isinstance(item, TokenTree):
                trees.append(item)
            else:
                flush()
                out.append(item)

        flush()
        return out

    def _procedural(self, entry, trigger):
        argument = self.tokens.read()
        if argument is None or argument.is_separator():
            raise ParseError(f'{entry.name} must be followed by one token tree',
                             macro=entry.name, point=trigger.point)

        log.debug('procedural macro %s at %r', entry.name, trigger.point)
        sink = ListWriter((TokenTree, Ast))
        pipe = TokenPipeline(ListReader([argument]), sink, self.context, entry.name, trigger.point)
        invoke(pipe, entry.handler)
        items = self._emitted(sink.items)
        return items[0] if len(items) == 1 else Block(items)

    def parse_annotation(self):
        at = self.tokens.read()
        name = self.tokens.read()
        if name is None or not name.is_identifier() or not name.adjacent:
            raise self._unexpected(name, 'annotation name right after @')
        elif not self.dispatch:
            raise ParseError(f'annotation @{name.value} in macro output', point=at.point)

        entry = self.context.readtables.lookup(ANNOTATION, name.value)
        if entry is None:
            raise UnknownTrigger(f'no annotation macro @{name.value}',
                                 macro=name.value, point=at.point)

        arguments = []
        tree = self.tokens.peek()
        if tree is not None and tree.is_group('(') and tree.adjacent:
            arguments = split(self.tokens.read().trees)

        tree = self.tokens.peek()
        if tree is None or tree.is_separator(';'):
            self.tokens.discard()
            item = None
        else:
            # stacked annotations may leave nothing for this one
            items = self.parse_item()
            item = (None if not items else
                    items[0] if len(items) == 1 else
                    Block(items))

        log.debug('annotation macro %s at %r', entry.name, at.point)
        sink = ListWriter((TokenTree, Ast))
        pipe = AnnotationPipeline(arguments, item, sink, self.context, entry.name, at.point)
        invoke(pipe, entry.handler)
        return self._emitted(sink.items)
