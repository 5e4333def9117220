import pytest
from mxpyr import *
from mxpyr.builtins import host, named
from mxpyr.context import Context
from mxpyr.nodes import children, is_item, stamp, unstamp, walk
from mxpyr.pipeline import SUCCESS, invoke
from mxpyr.quoting import astify, unastify
from mxpyr.symbols import SymbolTable
from mxpyr.tokens import Scalar, Token, IDENTIFIER, OPERATOR, untokenize

expand = configure(**conf_host)


def sprint(gen):
    res = []
    for item in gen:
        res.append(item)
        print(item)

    return res


def make_context(readtable=host):
    return Context(ReadtableStack(readtable, named=named))


def lex(source, readtable=host, context=None):
    if context is None:
        context = make_context(readtable)
    return list(context.token_reader(CharReader(source)))


def run(source, **conf):
    unit = (configure(**conf) if conf else expand).unit(source)
    assert unit.ok, unit.diagnostics
    return unit.run()


def failure(source, **conf):
    unit = (configure(**conf) if conf else expand).unit(source)
    assert not unit.ok
    diagnostic, = unit.diagnostics
    return diagnostic


# reader macros

@reader('#', name='line')
def line(pipe):
    pipe.passthrough_until(lambda c: c == '\n')


stash = []

@reader('%%', name='stash')
def keep(pipe):
    stash.append(pipe)
    return Literal(1)


@reader('boom')
def boom(pipe):
    raise ValueError('kaboom')


@reader('bad')
def bad(pipe):
    pipe.context.readtables.use('sexp')
    raise ValueError('nope')


@reader('good')
def good(pipe):
    pipe.context.readtables.use('sexp')


def test_trigger_consumed():
    trees = lex('# var x = 1\ny', host.extend([line]))
    # the written characters are lexed again but never dispatched
    assert [untokenize([t]).strip() for t in trees] == ['var', 'x', '=', '1', 'y']


def test_pipeline_after_success():
    stash.clear()
    trees = lex('%%', host.extend([keep]))
    assert trees[0].value == Literal(1)
    pipe, = stash
    assert pipe.state == SUCCESS
    with pytest.raises(MacroExpansionFailure):
        pipe.read()


def test_invoked_once():
    stash.clear()
    lex('%%', host.extend([keep]))
    pipe, = stash
    with pytest.raises(MacroExpansionFailure) as ei:
        invoke(pipe, lambda p: Literal(2))

    assert ei.value.macro == 'stash'
    assert pipe.state == SUCCESS
    assert pipe.sink.items == [Literal(1)]


def test_handler_failure_wrapped():
    with pytest.raises(MacroExpansionFailure) as ei:
        lex('x boom', host.extend([boom]))

    e = ei.value
    assert e.macro == 'boom'
    assert isinstance(e.__cause__, ValueError)
    assert (e.point.line, e.point.column) == (1, 2)


def test_failure_unwinds_binds():
    context = make_context(host.extend([bad, good]))
    with pytest.raises(MacroExpansionFailure):
        lex('bad', context=context)

    assert context.readtables.depth == 1

    lex('good', context=context)
    assert context.readtables.depth == 2
    assert context.readtables.names[-1] == 'sexp'


def test_passthrough_round_trip():
    for items in ('', 'a', 'abc def', list(range(10))):
        pipe = SymmetricPipeline(ListReader(items), ListWriter())
        while pipe.passthrough_many(3):
            pass

        assert pipe.sink.items == list(items)
        assert pipe.is_finished


@reader('~', name='raw')
def raw(pipe):
    pipe.passthrough_rest()


@reader('@!', name='hashbang')
def hashbang(pipe):
    pipe.write_many('#!x\n')


kept = Scalar(Token(IDENTIFIER, 'k'))

@reader('$', name='kept')
def keep_tree(pipe):
    pipe.write(kept)


def test_reader_round_trip():
    source = 'head ~ f(a, [b]) { c } // end\n  x'
    trees = lex(source, host.extend([raw]))
    # only the trigger itself goes missing
    assert untokenize(trees) == source.replace('~', '', 1)


def test_written_shebang():
    assert lex('#!/usr/bin/env mx\nx')[0].is_identifier('x')
    with pytest.raises(UnknownTrigger):
        lex('y @!', host.extend([hashbang]))


def test_written_trees_untouched():
    trees = lex('a $ $', host.extend([keep_tree]))
    assert untokenize(trees) == 'a k k'
    assert kept.token.trivia == ''


# procedural macros

def macro1(pipe):
    return ListLiteral([pipe.parse(part) for part in pipe.arguments()])


def neg(pipe):
    pipe.write(Scalar(Token(OPERATOR, '-')))
    pipe.passthrough_rest()


def loopy(pipe):
    pipe.write(Scalar(Token(IDENTIFIER, 'loopy')))
    pipe.passthrough_rest()


procedurals = host.extend([procedural(macro1), procedural(neg), procedural(loopy)])
expand_procedural = configure(readtable=procedurals, named=named)


def test_procedural_macro1():
    context = make_context(procedurals)
    chars = CharReader('macro1(1, 2, 3, 4)')
    tokens = context.token_reader(chars)
    items = context.parser(tokens).parse_unit()
    assert items == [ListLiteral([Literal(1), Literal(2), Literal(3), Literal(4)])]
    assert tokens.is_finished
    assert chars.is_finished


def test_procedural_writes_trees():
    assert list(expand_procedural('neg 5')) == [UnaryOperator('-', Literal(5))]


def test_procedural_output_not_redispatched():
    items = list(expand_procedural('loopy(x)'))
    assert items == [Call(Identifier('loopy'), [Identifier('x')])]


def test_procedural_needs_a_tree():
    unit = expand_procedural.unit('neg')
    assert unit.diagnostics[0].kind == 'ParseError'
    assert unit.diagnostics[0].macro == 'neg'


# host language

def test_var():
    assert list(expand('var x = 1;')) == [Binding(Identifier('x'), Literal(1))]


def test_if_is_switch():
    assert run('var c = False; if c { "a" } else { "b" }') == 'b'
    assert run('var c = True; if c { "a" } else { "b" }') == 'a'
    assert (list(expand('if c { "a" } else { "b" }')) ==
            list(expand('switch c { True: "a"; False: "b" }')))


def test_else_if():
    source = 'var x = 3; if x == 1 { "one" } else if x == 3 { "three" } else { "other" }'
    assert run(source) == 'three'


def test_switch():
    assert run('var x = 2; switch x { 1: "a"; _: "b" }') == 'b'
    assert run('var x = 1; switch x { 1: "a"; _: "b" }') == 'a'


def test_func():
    items = list(expand('func add(a, b) { a + b }'))
    binding, = items
    # func is sugar for binding a lambda
    assert isinstance(binding, Binding) and isinstance(binding.value, Lambda)
    assert run('func add(a, b) { a + b } add(1, 2)') == 3


def test_recursion():
    source = 'func fact(n) { if n <= 1 { 1 } else { n * fact(n - 1) } } fact(5)'
    assert run(source) == 120


def test_lambda():
    assert run('var f = (a, b) -> a * b; f(6, 7)') == 42


def test_precedence():
    assert list(expand('1 + 2 * 3')) == [
        BinaryOperator('+', Literal(1), BinaryOperator('*', Literal(2), Literal(3)))]
    assert run('var x = 1; x = x + 1; x') == 2


# source macros, quoting and hygiene

def test_swap():
    items = list(expand('macro swap(a, b) { quote { [unquote b, unquote a] } }\n'
                        'swap(1, 2)'))
    result, = items
    assert unstamp(result) == ListLiteral([Literal(2), Literal(1)])
    # what the quote built is stamped, what was spliced in is not
    assert result.scope is not None
    assert result.items[0].scope is None


def test_macros_not_retroactive():
    items = list(expand('swap(1, 2)\n'
                        'macro swap(a, b) { quote { [unquote b, unquote a] } }\n'
                        'swap(1, 2)'))
    before, after = items
    assert before == Call(Identifier('swap'), [Literal(1), Literal(2)])
    assert unstamp(after) == ListLiteral([Literal(2), Literal(1)])


def test_macro_block_scoped():
    items = list(expand('{ macro one() { quote { 1 } } one() }\none()'))
    block, call = items
    assert unstamp(block) == Block([Literal(1)])
    assert call == Call(Identifier('one'), [])


def test_hygiene():
    source = '''
    var tmp = 10;
    macro add_one(e) { quote { { var tmp = 1; tmp + unquote e } } }
    add_one(tmp)
    '''
    assert run(source) == 11


def test_gensym():
    source = '''
    macro double(e) {
        var t = gensym(tmp);
        quote { { var unquote t = unquote e; unquote t + unquote t } }
    }
    var tmp = 21;
    double(tmp) + double(tmp)
    '''
    unit = expand.unit(source)
    assert unit.ok, unit.diagnostics
    assert unit.run() == 84
    symbols = {node.name for item in unit.items for node in walk(item)
               if isinstance(node, Identifier) and isinstance(node.name, LexicalSymbol)}
    # one fresh symbol per instantiation
    assert len(symbols) == 2


def test_expanded_captures():
    source = '''
    macro with_it(v, body) { quote { { var unquote expanded("it") = unquote v; unquote body } } }
    with_it(20, it + 1)
    '''
    assert run(source) == 21


def test_gensym_does_not_capture():
    source = '''
    macro with_it(v, body) { quote { { var unquote gensym(it) = unquote v; unquote body } } }
    with_it(20, it + 1)
    '''
    unit = expand.unit(source)
    assert unit.ok
    with pytest.raises(NameError):
        unit.run()


def test_bare_gensym():
    unit = expand.unit('macro m() { quote { gensym(t) } }\nm()\nm()')
    assert unit.ok, unit.diagnostics
    a, b = unit.items
    assert isinstance(a, Identifier) and isinstance(a.name, LexicalSymbol)
    assert isinstance(b, Identifier) and isinstance(b.name, LexicalSymbol)
    assert a.name != b.name


def test_bare_gensym_binds():
    source = '''
    macro fresh(e) { quote { { var gensym(t) = 100; unquote e } } }
    var t = 5;
    fresh(t + 1)
    '''
    assert run(source) == 6


def test_invalid_splice():
    diagnostic = failure('macro bad() { quote { unquote 5 } }\nbad()')
    assert diagnostic.kind == 'InvalidSpliceType'
    assert diagnostic.macro == 'bad'


def test_max_depth():
    diagnostic = failure('macro loop(x) { quote { loop(unquote x) } }\nloop(1)',
                         **conf_host, max_depth=5)
    assert diagnostic.kind == 'MacroExpansionFailure'
    assert 'deeper than 5' in diagnostic.message
    # the innermost call, spliced in from the quote on the first line
    assert diagnostic.line == 1


def test_macro_arity():
    diagnostic = failure('macro one() { quote { 1 } }\none(2)')
    assert diagnostic.macro == 'one'


def test_quasiquote():
    context = make_context()
    result = quasiquote(context, 'unquote a + 1', a=Identifier('x'))
    assert unstamp(result) == BinaryOperator('+', Identifier('x'), Literal(1))
    assert result.scope is context.scope
    assert result.left.scope is None
    with pytest.raises(InvalidSpliceType):
        quasiquote(context, 'unquote a', a=3)

    with pytest.raises(TypeError):
        # splice failures are type errors too
        quasiquote(context, 'unquote a', a=[Identifier('x'), 'y'])


def test_astify():
    context = make_context()
    node = BinaryOperator('+', Identifier('x'), ListLiteral([Literal(1)]))
    tree = astify(node)
    assert unastify(tree) == node
    assert context.evaluate(tree) == node


def test_symbols():
    table = SymbolTable()
    a, b = table.gensym('tmp'), table.gensym('tmp')
    assert a != b
    assert table.expanded('it') == table.expanded('it')
    assert len(table) == 4
    assert binding_key('x') == 'x'
    assert binding_key(a, object()) is a
    assert binding_key(table.expanded('it')) == 'it'


# pattern macros

def interleave(first, second):
    a = first.read()
    b = second.read()
    second.write(b)
    first.write(a)
    second.write(Literal('second'))
    first.write(Literal('first'))
    return Literal('returned')


def collect(*items):
    return [item.read() for item in reversed(items)]


def sloppy(thing):
    thing.write(5)


patterns = dict(interleave=interleave, collect=collect, sloppy=sloppy)
expand_pattern = configure(**conf_host, pattern_macros=patterns)


def test_pattern_order():
    items = list(expand_pattern('interleave(1, 2)'))
    # declaration order, not the order things were written in
    assert items == [Literal(1), Literal('first'), Literal(2), Literal('second'),
                     Literal('returned')]


def test_pattern_rest():
    assert list(expand_pattern('collect(1, 2, 3)')) == [Literal(3), Literal(2), Literal(1)]


def test_pattern_from_readtable():
    expand_table = configure(readtable=host.extend([pattern(collect)]), named=named)
    assert list(expand_table('collect(1, 2)')) == [Literal(2), Literal(1)]


def test_pattern_nested():
    items = list(expand_pattern('[collect(1, 2), 3]'))
    # several results splice into the enclosing list
    assert items == [ListLiteral([Literal(2), Literal(1), Literal(3)])]


def test_pattern_from_bound_readtable():
    tables = dict(named, pat=host.extend([pattern(collect)]))
    source = 'use reader pat; collect(1, 2); use reader previous; collect(3, 4)'
    items = list(configure(readtable=host, named=tables)(source))
    assert items == [Literal(2), Literal(1),
                     Call(Identifier('collect'), [Literal(3), Literal(4)])]


def twice(first, second):
    second.write(second.read())
    first.write(Call(Identifier('interleave'), [first.read(), Literal(0)]))


def test_pattern_output_expanded_in_order():
    items = list(configure(**conf_host, pattern_macros=dict(patterns, twice=twice))('twice(1, 2)'))
    assert items == [Literal(1), Literal('first'), Literal(0), Literal('second'),
                     Literal('returned'), Literal(2)]


seen_by_inner = []


def outer():
    return Call(Identifier('inner'), [42])


def inner(thing):
    seen_by_inner.append(thing.read())


def test_pattern_malformed_output():
    seen_by_inner.clear()
    diagnostic = failure('outer()', **conf_host, pattern_macros=dict(outer=outer, inner=inner))
    assert diagnostic.kind == 'MacroExpansionFailure'
    assert diagnostic.macro == 'outer'
    assert '42' in diagnostic.message
    assert seen_by_inner == []


def test_pattern_failures():
    assert failure('interleave(1)', **conf_host, pattern_macros=patterns).macro == 'interleave'
    diagnostic = failure('\n\n  sloppy(1)', **conf_host, pattern_macros=patterns)
    assert diagnostic.kind == 'MacroExpansionFailure'
    assert 'TypeError' in diagnostic.message
    assert (diagnostic.line, diagnostic.column) == (3, 2)


def test_pattern_pipes_closed():
    kept = []
    def keep_pipe(thing):
        kept.append(thing)
        return thing.read()

    assert list(configure(**conf_host, pattern_macros={'keep': keep_pipe})('keep(1)')) == [Literal(1)]
    pipe, = kept
    assert pipe.state == SUCCESS
    with pytest.raises(MacroExpansionFailure):
        pipe.read()


# annotation macros

seen = []


def trace(pipe):
    item = pipe.item
    return [item, Call(Identifier('print'), [Literal(str(item.name.name))])]


def tag(pipe):
    seen.extend(pipe.read_many(3))
    seen.append(pipe.parse_arguments())
    return pipe.item


annotated = configure(readtable=host.extend([annotation(trace), annotation(tag)]), named=named)


def test_annotation_item():
    binding, call = annotated('@trace func f() { 1 }')
    assert isinstance(binding, Binding)
    assert call == Call(Identifier('print'), [Literal('f')])


def test_annotation_arguments():
    seen.clear()
    items = list(annotated('@tag(1, 2) var x = 3;'))
    assert items == [Binding(Identifier('x'), Literal(3))]
    one, two, item, parsed = seen
    assert one[0].value == 1 and two[0].value == 2
    assert item == items[0]
    assert parsed == [Literal(1), Literal(2)]


def test_annotation_standalone():
    assert list(expand('@inline(1, 2); 3')) == [Literal(1), Literal(2), Literal(3)]
    assert list(expand('@inline(1, 2)')) == [Literal(1), Literal(2)]


def test_inline():
    items = list(expand('@inline { var a = 1; var b = 2 }'))
    assert items == [Binding(Identifier('a'), Literal(1)), Binding(Identifier('b'), Literal(2))]
    assert list(expand('@inline func body() { 1; 2 }')) == [Literal(1), Literal(2)]


def test_annotation_unknown():
    diagnostic = failure('@nope var x = 1;')
    assert diagnostic.kind == 'UnknownTrigger'
    assert diagnostic.macro == 'nope'


# other syntaxes

def test_sexp():
    source = ('func add(a, b) { a + b }\n'
              'use reader sexp; (add 1 (add 2 3)) use reader previous;\n'
              'add(1, 2)')
    unit = expand.unit(source)
    assert unit.ok, unit.diagnostics
    assert unit.items[1] == Call(Identifier('add'), [
        Literal(1), Call(Identifier('add'), [Literal(2), Literal(3)])])
    assert unit.run() == 3
    assert run('func add(a, b) { a + b } use reader sexp; (add 1 (add 2 3))') == 6


def test_foreign():
    items = sprint(expand('(add 1 2) (add "x" True)', syntax='sexp'))
    assert items == [Call(Identifier('add'), [Literal(1), Literal(2)]),
                     Call(Identifier('add'), [Literal('x'), Literal(True)])]

    unit = expand.unit('1', syntax='klingon')
    assert unit.diagnostics[0].kind == 'UnknownTrigger'


# units and diagnostics

def test_diagnostic():
    unit = expand.unit('var x = (1, 2', name='broken.mx')
    assert unit.ast is None
    diagnostic, = unit.diagnostics
    assert diagnostic.kind == 'UnbalancedGrouping'
    assert diagnostic.fatal
    assert (diagnostic.name, diagnostic.line, diagnostic.column) == ('broken.mx', 1, 8)
    assert str(diagnostic).startswith('broken.mx:1:8: UnbalancedGrouping in macro var')


def test_unit():
    unit = expand_unit('var x = 1; x + 1', **conf_host)
    assert unit.ok
    assert unit.ast == Block([Binding(Identifier('x'), Literal(1)),
                              BinaryOperator('+', Identifier('x'), Literal(1))])
    assert unit.run() == 2


def test_environment():
    assert run('answer + 1', **conf_host, environment={'answer': 41}) == 42


def test_do_path(tmp_path):
    path = tmp_path / 'some.mx'
    path.write_text('var x = 1;\nx * 2\n')
    unit = make_do_path(expand.unit, chunksize=4)(path)
    assert unit.ok
    assert unit.run() == 2


def test_node_helpers():
    context = make_context()
    scope = context.scope
    node = Binding(Identifier('x'), BinaryOperator('+', Literal(1), Identifier('y', scope=scope)))
    assert is_item(node) and not is_item(node.value)
    assert list(children(node)) == [node.target, node.value]
    stamped = stamp(node, context.symbols.scope('other'))
    # names that already carry a scope keep it
    assert stamped.value.right.scope is scope
    assert all(n.scope is not None for n in walk(stamped))
    assert unstamp(stamped) == unstamp(node)
