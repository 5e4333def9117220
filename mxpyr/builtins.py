""" the macros that make up the host language

    var x = 1;
    func add(a, b) { a + b }
    if x == 1 { "one" } else { "other" }
    switch x { 1: "a"; _: "b" }
    macro swap(a, b) { quote { [unquote b, unquote a] } }
    use reader sexp; (add 1 2) use reader previous;
"""

from .lexer import ESCAPES
from .nodes import (
    Identifier, Literal, ListLiteral, Call, Block, Binding, Func,
    Case, Switch, Quote, Unquote, MacroDefinition)
from .readtable import Readtable, reader, annotation
from .tokens import split

ATOM_END = ' \t\r\n()";'


def _body(block):
    return block.items[0] if len(block.items) == 1 else block


def _group(pipe, delimiter, what):
    tree = pipe.tokens().read()
    if tree is None or not tree.is_group(delimiter):
        pipe.fail(f'{what} expected a {delimiter!r} group')

    return tree


def _name(pipe, what):
    pipe.skip_space()
    name = pipe.read_word()
    if not name or name[0].isdigit():
        pipe.fail(f'{what} needs a name')

    return name


def _parameters(pipe, what):
    group = _group(pipe, '(', what)
    parameters = []
    for part in split(group.trees):
        if len(part) != 1 or not part[0].is_identifier():
            pipe.fail(f'{what} parameters must be names')
        parameters.append(Identifier(part[0].value))

    return parameters


@reader('var')
def var(pipe):
    """ var name = value, in a quote the name may be unquoted """
    parser = pipe.parser()
    target = parser.parse_unary()
    if not isinstance(target, (Identifier, Unquote)):
        pipe.fail('var binds a name')

    equals = pipe.tokens().read()
    if equals is None or not equals.is_operator('='):
        pipe.fail(f'var {target.name if isinstance(target, Identifier) else ""} needs = and a value')

    return Binding(target, parser.parse_expression())


@reader('func')
def func(pipe):
    name = _name(pipe, 'func')
    parameters = _parameters(pipe, 'func')
    body = pipe.parser().parse_block(_group(pipe, '{', 'func'))
    return Func(Identifier(name), parameters, body)


@reader('macro')
def macro(pipe):
    name = _name(pipe, 'macro')
    parameters = _parameters(pipe, 'macro')
    # quotes lexed in the body capture the scope of this definition
    with pipe.context.scoped(name), pipe.context.quoting(False):
        body = pipe.parser().parse_block(_group(pipe, '{', 'macro'))

    return MacroDefinition(Identifier(name), parameters, body)


@reader('if')
def if_(pipe):
    """ if c { a } else { b } is switch c { True: a; False: b } """
    condition = pipe.parse_expression()
    parser = pipe.parser()
    tokens = pipe.tokens()
    then = _body(parser.parse_block(_group(pipe, '{', 'if')))
    otherwise = Block(())
    tree = tokens.peek()
    if tree is not None and tree.is_identifier('else'):
        tokens.discard()
        tree = tokens.read()
        if tree is not None and tree.is_group('{'):
            otherwise = _body(parser.parse_block(tree))
        elif tree is not None and tree.is_embedded():
            # else if, the inner if already ran while this one looked ahead
            otherwise = tree.value
        else:
            pipe.fail('else expected a block')

    return Switch(condition, [Case(Literal(True), then), Case(Literal(False), otherwise)])


@reader('switch')
def switch(pipe):
    subject = pipe.parse_expression()
    parser = pipe.parser()
    cases = []
    for part in split(_group(pipe, '{', 'switch').trees, ';'):
        colon = next((i for i, tree in enumerate(part) if tree.is_operator(':')), None)
        if colon is None or colon == 0 or colon == len(part) - 1:
            pipe.fail('switch cases look like pattern: body')

        cases.append(Case(parser.parse_trees(part[:colon]), parser.parse_trees(part[colon + 1:])))

    return Switch(subject, cases)


@reader('quote')
def quote(pipe):
    with pipe.context.quoting():
        body = pipe.parser().parse_block(_group(pipe, '{', 'quote'))

    return Quote(body, scope=pipe.context.scope)


@reader('unquote')
def unquote(pipe):
    with pipe.context.quoting(False):
        return Unquote(pipe.parser().parse_unary())


@reader('gensym')
def gensym(pipe):
    """ gensym or gensym(name), a fresh symbol each time it is evaluated

    in a quote body it is unquoted, so every instantiation gets its own """
    arguments = []
    if pipe.peek() == '(':
        pipe.discard()
        arguments.append(Literal(pipe.read_word()))
        if pipe.read() != ')':
            pipe.fail('gensym(name) takes a single name')

    call = Call(Identifier('gensym'), arguments)
    return Unquote(call) if pipe.context.quote_depth else call


@reader('use')
def use(pipe):
    """ use reader NAME binds a named readtable until use reader previous """
    if _name(pipe, 'use') != 'reader':
        pipe.fail('expected use reader NAME')

    name = _name(pipe, 'use reader')
    readtables = pipe.context.readtables
    if name == 'previous':
        readtables.unbind()
    else:
        readtables.use(name)

    if pipe.peek() == ';':
        pipe.discard()


def _atom(text, point=None):
    if text in ('True', 'False'):
        return Literal(text == 'True')

    for convert in (int, float):
        try:
            return Literal(convert(text))
        except ValueError:
            pass

    return Identifier(text, point=point)


def _sexp_string(pipe):
    out = []
    while True:
        char = pipe.read()
        if char is None:
            pipe.fail('string is never terminated')
        elif char == '"':
            return Literal(''.join(out))
        elif char == '\\':
            escape = pipe.read()
            if escape not in ESCAPES:
                pipe.fail(f'unknown escape \\{escape}')
            out.append(ESCAPES[escape])
        else:
            out.append(char)


def _sexp(pipe):
    """ the rest of a list whose ( is already read """
    items = []
    while True:
        if not pipe.skip_space():
            pipe.fail('s-expression is never closed')

        point = pipe.source.point
        char = pipe.read()
        if char == ')':
            break
        elif char == '(':
            items.append(_sexp(pipe))
        elif char == '"':
            items.append(_sexp_string(pipe))
        else:
            text = [char]
            while pipe.peek() is not None and pipe.peek() not in ATOM_END:
                text.append(pipe.read())
            items.append(_atom(''.join(text), point))

    return Call(items[0], items[1:]) if items else ListLiteral(())


@reader('(', name='sexp-list')
def sexp_list(pipe):
    return _sexp(pipe)


@reader('#sexp', name='sexp')
def sexp_file(pipe):
    """ a whole source of s-expressions """
    while pipe.skip_space():
        if pipe.read() != '(':
            pipe.fail('only lists at the top of an s-expression source')
        pipe.write(_sexp(pipe))


def inline(pipe):
    """ splice the contents of a block or of a function without parameters

    standalone, @inline(a, b); puts its arguments in the item slot """
    if pipe.standalone:
        return pipe.parse_arguments()

    item = pipe.item
    if isinstance(item, Block):
        return list(item.items)
    elif isinstance(item, Func) and not item.parameters:
        body = item.body
        return list(body.items) if isinstance(body, Block) else [body]

    return item


host = Readtable([var, func, macro, if_, switch, quote, unquote, gensym, use,
                  annotation(inline)],
                 name='host')

sexp = Readtable([use, sexp_list, sexp_file], name='sexp')

named = {
    'host': host,
    'sexp': sexp,
}

conf_host = dict(
    readtable=host,
    named=named,
)

conf_strict = dict(
    conf_host,
    whitelist=(),  # nothing may be rebound
)
