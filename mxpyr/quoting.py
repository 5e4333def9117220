""" quasiquotation

a quote is data until it is instantiated, then every unquote in it is
evaluated and spliced in and every node that came from the quote itself
is stamped with the scope the quote captured, which is what keeps names
it introduces away from names at the call site """

from .errors import InvalidSpliceType
from .nodes import (
    NODES, META, Ast, Block, Quote, Unquote,
    Identifier, Literal, ListLiteral, Call)
from .readers import CharReader
from .symbols import Symbol


def splice_items(value):
    """ the only legal unquote payloads are an ast or a sequence of them """
    if isinstance(value, Ast):
        return [value]
    elif isinstance(value, (list, tuple)):
        bad = [v for v in value if not isinstance(v, Ast)]
        if not bad:
            return list(value)

        value = bad[0]

    raise InvalidSpliceType('unquote must produce an ast or a list of asts, '
                            f'got {type(value).__name__} {value!r}')


def _fill(node, environment, context, scope):
    if isinstance(node, Unquote):
        return splice_items(context.evaluate(node.expression, environment))
    elif isinstance(node, Quote):
        # nested quotes wait for their own instantiation
        return [node]

    changes = {}
    for name, value in node.fields():
        if isinstance(value, Ast):
            filled = _fill(value, environment, context, scope)
            if len(filled) != 1:
                raise InvalidSpliceType(
                    f'{len(filled)} asts spliced into {node.__class__.__name__}.{name} '
                    'which holds exactly one')
            changes[name] = filled[0]
        elif isinstance(value, tuple):
            changes[name] = tuple(
                f for v in value
                for f in (_fill(v, environment, context, scope) if isinstance(v, Ast) else [v]))

    if node.scope is None:
        changes['scope'] = scope

    return [node.evolve(**changes)]


def instantiate(quote, environment, context):
    """ one ast, or a list of them when the quote holds several items """
    body = quote.body
    items = body.items if isinstance(body, Block) else (body,)
    out = [f for item in items for f in _fill(item, environment, context, quote.scope)]
    return out[0] if len(out) == 1 else out


def quasiquote(context, text, **splices):
    """ quote source text from python, splices are bound for its unquotes

    quasiquote(context, 'unquote a + 1', a=Identifier('x')) """
    chars = CharReader(text, name='<quasiquote>')
    with context.readtables.extent():
        items = context.parser(context.token_reader(chars)).parse_unit()

    quote = Quote(Block(items), scope=context.scope)
    return instantiate(quote, context.environment.child(splices), context)


def gensym(context, name=None):
    return Identifier(context.gensym(name))


def expanded(context, name):
    return Identifier(context.expanded(name))


def astify(thing):
    """ ast that builds thing when evaluated, unquotes are left to be evaluated """
    if isinstance(thing, Unquote):
        return thing.expression
    elif isinstance(thing, Ast):
        return Call(Identifier(thing.__class__.__name__),
                    [astify(v) for k, v in thing.fields() if k not in META])
    elif isinstance(thing, (list, tuple)):
        return ListLiteral([astify(v) for v in thing])
    elif thing is None or isinstance(thing, (str, int, float, bool, Symbol)):
        return Literal(thing)

    raise TypeError(f'cannot astify {thing!r}')


def unastify(tree):
    """ undo astify without evaluating anything """
    if (isinstance(tree, Call) and isinstance(tree.target, Identifier) and
        tree.target.name in NODES):
        return NODES[tree.target.name](*[unastify(a) for a in tree.arguments])
    elif isinstance(tree, ListLiteral):
        return tuple(unastify(i) for i in tree.items)
    elif isinstance(tree, Literal):
        return tree.value

    raise TypeError(f'{tree!r} did not come from astify')
