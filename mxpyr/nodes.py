""" abstract syntax tree node types

nodes are immutable, once built they are only ever rebuilt, so any
subtree may be shared between trees

every node has the syntactic data in its fields plus a scope, the
hygiene context a quote stamped it with, None for user source """

import attr


# fields that say where a node came from rather than what it is
META = 'scope', 'point'


class Ast:

    __slots__ = ()

    def fields(self):
        return [(a.name, getattr(self, a.name)) for a in attr.fields(self.__class__)]

    def evolve(self, **changes):
        return attr.evolve(self, **changes)

    def __repr__(self):
        values = [repr(v) if not isinstance(v, tuple) else repr(list(v))
                  for k, v in self.fields() if k not in META]
        scope = f' @{self.scope!r}' if self.scope is not None else ''
        return f'<{self.__class__.__name__} {" ".join(values)}{scope}>'


def node(cls):
    return attr.frozen(repr=False)(cls)


def _seq(value):
    return tuple(value)


@node
class Identifier(Ast):
    name = attr.ib()  # str for names from source, Symbol for generated ones
    scope = attr.ib(default=None)
    point = attr.ib(default=None, eq=False)  # where a parsed name started


@node
class Literal(Ast):
    value = attr.ib()
    scope = attr.ib(default=None)


@node
class ListLiteral(Ast):
    items = attr.ib(converter=_seq)
    scope = attr.ib(default=None)


@node
class Tuple(Ast):
    items = attr.ib(converter=_seq)
    scope = attr.ib(default=None)


@node
class Call(Ast):
    target = attr.ib()
    arguments = attr.ib(converter=_seq)
    scope = attr.ib(default=None)


@node
class Lookup(Ast):
    target = attr.ib()
    name = attr.ib()
    scope = attr.ib(default=None)


@node
class UnaryOperator(Ast):
    operator = attr.ib()
    operand = attr.ib()
    scope = attr.ib(default=None)


@node
class BinaryOperator(Ast):
    operator = attr.ib()
    left = attr.ib()
    right = attr.ib()
    scope = attr.ib(default=None)


@node
class Block(Ast):
    items = attr.ib(converter=_seq)
    scope = attr.ib(default=None)


@node
class Binding(Ast):
    target = attr.ib()
    value = attr.ib()
    scope = attr.ib(default=None)


@node
class Func(Ast):
    name = attr.ib()
    parameters = attr.ib(converter=_seq)
    body = attr.ib()
    scope = attr.ib(default=None)


@node
class Lambda(Ast):
    parameters = attr.ib(converter=_seq)
    body = attr.ib()
    scope = attr.ib(default=None)


@node
class Case(Ast):
    pattern = attr.ib()
    body = attr.ib()
    scope = attr.ib(default=None)


@node
class Switch(Ast):
    subject = attr.ib()
    cases = attr.ib(converter=_seq)
    scope = attr.ib(default=None)


@node
class Quote(Ast):
    """ the scope of a quote is the lexical scope it captured """
    body = attr.ib()
    scope = attr.ib(default=None)


@node
class Unquote(Ast):
    expression = attr.ib()
    scope = attr.ib(default=None)


@node
class MacroDefinition(Ast):
    name = attr.ib()
    parameters = attr.ib(converter=_seq)
    body = attr.ib()
    scope = attr.ib(default=None)


ITEMS = Binding, Func, MacroDefinition

WILDCARD = '_'


def is_item(thing):
    return isinstance(thing, ITEMS)


def children(thing):
    """ direct subtrees in field order """
    for _, value in thing.fields():
        if isinstance(value, Ast):
            yield value
        elif isinstance(value, tuple):
            yield from (v for v in value if isinstance(v, Ast))


def transform(thing, fun, skip=None):
    """ rebuild bottom up, fun gets every rebuilt node and returns its replacement

    subtrees that skip holds for are left exactly as they are """
    if skip is not None and skip(thing):
        return thing

    changes = {}
    for name, value in thing.fields():
        if isinstance(value, Ast):
            new = transform(value, fun, skip)
            if new is not value:
                changes[name] = new
        elif isinstance(value, tuple):
            new = tuple(transform(v, fun, skip) if isinstance(v, Ast) else v for v in value)
            if any(a is not b for a, b in zip(new, value)):
                changes[name] = new

    if changes:
        thing = thing.evolve(**changes)

    return fun(thing)


def stamp(thing, scope):
    """ give every node that has no scope yet the scope of a quote """
    return transform(thing, lambda n: n.evolve(scope=scope) if n.scope is None else n)


def unstamp(thing):
    """ drop every scope, handy when comparing shapes """
    return transform(thing, lambda n: n.evolve(scope=None) if n.scope is not None else n)


def walk(thing):
    """ preorder iteration over a tree """
    yield thing
    for child in children(thing):
        yield from walk(child)


NODES = {cls.__name__: cls for cls in (
    Identifier, Literal, ListLiteral, Tuple, Call, Lookup,
    UnaryOperator, BinaryOperator, Block, Binding, Func, Lambda,
    Case, Switch, Quote, Unquote, MacroDefinition)}

# fields that hold subtrees, every other field holds plain data
SUBTREES = {
    Identifier: (),
    Literal: (),
    ListLiteral: ('items',),
    Tuple: ('items',),
    Call: ('target', 'arguments'),
    Lookup: ('target',),
    UnaryOperator: ('operand',),
    BinaryOperator: ('left', 'right'),
    Block: ('items',),
    Binding: ('target', 'value'),
    Func: ('name', 'parameters', 'body'),
    Lambda: ('parameters', 'body'),
    Case: ('pattern', 'body'),
    Switch: ('subject', 'cases'),
    Quote: ('body',),
    Unquote: ('expression',),
    MacroDefinition: ('name', 'parameters', 'body'),
}


def malformed(thing):
    """ describe the first subtree field holding something that is not an ast

    None when the whole tree is well formed """
    if not isinstance(thing, Ast):
        return f'{thing!r} is not an ast'

    for n in walk(thing):
        for name in SUBTREES.get(n.__class__, ()):
            value = getattr(n, name)
            for v in (value if isinstance(value, tuple) else (value,)):
                if not isinstance(v, Ast):
                    return f'{n.__class__.__name__}.{name} holds {v!r}'
