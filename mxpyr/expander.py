""" simplification and pattern macro expansion

runs on one top level item at a time, after parsing, so everything a
pattern macro sees is already a well formed ast """

import inspect
import logging

from . import quoting
from .errors import MacroExpansionFailure
from .nodes import (
    Ast, Block, Binding, Call, Func, Identifier, Lambda, MacroDefinition, Quote,
    malformed, transform)
from .pipeline import AstPipeline, AsymmetricPipeline, OrderedSinks, invoke
from .readers import ListReader, ListWriter
from .readtable import PATTERN
from .symbols import binding_key

log = logging.getLogger(__name__)

MAX_DEPTH = 64


def _lower(ast):
    if isinstance(ast, Func):
        return Binding(ast.name, Lambda(ast.parameters, ast.body, scope=ast.scope),
                       scope=ast.scope)

    return ast


def simplify(ast):
    """ lower sugar into the core forms, quotes are data and keep their shape """
    return transform(ast, _lower, skip=lambda a: isinstance(a, Quote))


class PatternMacro:
    """ a python function over syntax

    every positional parameter is an AstPipeline over one argument, a *rest
    parameter gets one pipeline per leftover argument, what the pipelines
    were written goes out in parameter order followed by the return value """

    def __init__(self, function, name=None):
        self.function = function
        self.name = name or function.__name__
        parameters = inspect.signature(function).parameters.values()
        self.names = [p.name for p in parameters
                      if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
        self.rest = next((p.name for p in parameters if p.kind == p.VAR_POSITIONAL), None)

    def _names(self, count, point):
        if count < len(self.names) or self.rest is None and count > len(self.names):
            raise MacroExpansionFailure(
                f'takes {len(self.names)} arguments, got {count}', macro=self.name, point=point)

        return self.names + [f'{self.rest}{i}' for i in range(count - len(self.names))]

    def __call__(self, arguments, context, point=None):
        arguments = list(arguments)
        names = self._names(len(arguments), point)
        sinks = OrderedSinks(names)
        pipes = [AstPipeline(argument, context, self.name, name, sinks[name])
                 for argument, name in zip(arguments, names)]
        driver = AsymmetricPipeline(ListReader(pipes), ListWriter(Ast), context, self.name, point)
        try:
            invoke(driver, lambda _: self.function(*pipes))
        finally:
            for pipe in pipes:
                pipe.state = driver.state

        return sinks.emitted() + driver.sink.items

    def __repr__(self):
        return f'<pattern {self.name}>'


class SourceMacro:
    """ a macro defined in source, its body runs in the compile time evaluator """

    def __init__(self, definition, environment):
        self.definition = definition
        self.name = str(definition.name.name)
        self.environment = environment

    def __call__(self, arguments, context, point=None):
        parameters = self.definition.parameters
        if len(arguments) != len(parameters):
            raise MacroExpansionFailure(
                f'takes {len(parameters)} arguments, got {len(arguments)}',
                macro=self.name, point=point)

        def body(pipe):
            env = self.environment.child(
                {binding_key(p.name, p.scope): a for p, a in zip(parameters, pipe.read_many(len(parameters)))})
            return quoting.splice_items(context.evaluate(self.definition.body, env))

        driver = AsymmetricPipeline(ListReader(arguments), ListWriter(Ast), context, self.name, point)
        return list(invoke(driver, body))

    def __repr__(self):
        return f'<source macro {self.name}>'


def as_macro(handler, name=None):
    if isinstance(handler, (PatternMacro, SourceMacro)):
        return handler

    return PatternMacro(handler, name)


class Expander:
    """ walk items, expanding calls to pattern macros

    definitions register as they are reached so a macro only applies to
    what comes after it, an inner block can shadow a macro until it ends,
    pattern entries of whatever readtable is bound when a call is reached
    come after every definition """

    _type_funs = (
        (Quote, 'quote'),
        (MacroDefinition, 'macro_definition'),
        (Block, 'block'),
        (Call, 'call'),
        (Ast, 'node'),
    )

    def __init__(self, context, pattern_macros=None, max_depth=MAX_DEPTH):
        self.context = context
        self.max_depth = max_depth
        self._depth = 0
        self._macro_stack = [{name: as_macro(handler, name)
                               for name, handler in (pattern_macros or {}).items()}]
        self._entry_macros = {}

    def __call__(self, ast):
        """ the items that replace ast """
        for cls, attr in self._type_funs:
            if isinstance(ast, cls):
                return getattr(self, attr)(ast)

        raise MacroExpansionFailure(f'expansion produced something that is not an ast {ast!r}')

    def expand(self, item):
        return self(simplify(item))

    def one(self, ast):
        items = self(ast)
        return items[0] if len(items) == 1 else Block(items)

    def lookup(self, name):
        for frame in reversed(self._macro_stack):
            if name in frame:
                return frame[name]

        entry = self.context.readtables.lookup(PATTERN, name)
        if entry is not None:
            if entry not in self._entry_macros:
                self._entry_macros[entry] = as_macro(entry.handler, entry.name)
            return self._entry_macros[entry]

    def define(self, name, macro):
        self._macro_stack[-1][name] = macro

    def quote(self, ast):
        return [ast]

    def macro_definition(self, ast):
        macro = SourceMacro(ast, self.context.environment)
        log.debug('define %r', macro)
        self.define(macro.name, macro)
        return []

    def block(self, ast):
        self._macro_stack.append({})
        try:
            items = [i for item in ast.items for i in self(item)]
        finally:
            self._macro_stack.pop()

        return [ast.evolve(items=items)]

    def call(self, ast):
        target = ast.target
        macro = None
        if isinstance(target, Identifier) and isinstance(target.name, str):
            macro = self.lookup(target.name)

        if macro is None:
            return self.node(ast)

        point = target.point
        if self._depth >= self.max_depth:
            raise MacroExpansionFailure(
                f'expansion nested deeper than {self.max_depth}', macro=macro.name, point=point)

        log.debug('expand %r at %r', macro, point)
        results = macro(ast.arguments, self.context, point)
        for result in results:
            problem = malformed(result)
            if problem is not None:
                raise MacroExpansionFailure(
                    f'expansion produced a malformed ast, {problem}',
                    macro=macro.name, point=point)

        self._depth += 1
        try:
            return [i for result in results for i in self(simplify(result))]
        finally:
            self._depth -= 1

    def node(self, ast):
        changes = {}
        for name, value in ast.fields():
            if isinstance(value, Ast):
                changes[name] = self.one(value)
            elif isinstance(value, tuple):
                changes[name] = tuple(
                    i for v in value for i in (self(v) if isinstance(v, Ast) else [v]))

        return [ast.evolve(**changes) if changes else ast]
