""" the compile time evaluator macro bodies run in

it knows just enough of the host language to compute syntax, there is
no execution model for compiled programs here """

import logging
import operator

from . import quoting
from .errors import MacroExpansionFailure
from .nodes import (
    NODES, Ast, Identifier, Literal, ListLiteral, Tuple, Call, Lookup,
    UnaryOperator, BinaryOperator, Block, Binding, Func, Lambda,
    Switch, Quote, Unquote, MacroDefinition, WILDCARD)
from .symbols import binding_key

log = logging.getLogger(__name__)

BINARY = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
    '%': operator.mod,
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
    '|': operator.or_,
    '^': operator.xor,
    '&': operator.and_,
}

UNARY = {
    '-': operator.neg,
    '!': operator.not_,
    '~': operator.invert,
}


class Environment:

    def __init__(self, bindings=None, parent=None):
        self.bindings = dict(bindings or {})
        self.parent = parent

    def _frame(self, key):
        env = self
        while env is not None:
            if key in env.bindings:
                return env
            env = env.parent

    def lookup(self, key):
        env = self._frame(key)
        if env is None:
            raise NameError(f'{key!r} is not bound')

        return env.bindings[key]

    def define(self, key, value):
        self.bindings[key] = value
        return value

    def assign(self, key, value):
        env = self._frame(key)
        if env is None:
            raise NameError(f'cannot assign to unbound {key!r}')

        env.bindings[key] = value
        return value

    def child(self, bindings=None):
        return self.__class__(bindings, self)

    def __contains__(self, key):
        return self._frame(key) is not None


class Closure:

    def __init__(self, parameters, body, environment, context, name=None):
        self.parameters = parameters
        self.body = body
        self.environment = environment
        self.context = context
        self.name = name

    def __call__(self, *arguments):
        if len(arguments) != len(self.parameters):
            raise TypeError(f'{self.name or "lambda"} takes {len(self.parameters)} '
                            f'arguments, got {len(arguments)}')

        env = self.environment.child(
            {binding_key(p.name, p.scope): a for p, a in zip(self.parameters, arguments)})
        return Evaluator(env, self.context)(self.body)

    def __repr__(self):
        return f'<closure {self.name or "lambda"}>'


def _key(identifier):
    if not isinstance(identifier, Identifier):
        raise MacroExpansionFailure(f'only names can be bound, not {identifier!r}')

    return binding_key(identifier.name, identifier.scope)


class Evaluator:

    _type_funs = (
        (Literal, 'literal'),
        (Identifier, 'identifier'),
        (ListLiteral, 'list_literal'),
        (Tuple, 'tuple'),
        (Call, 'call'),
        (Lookup, 'lookup'),
        (UnaryOperator, 'unary'),
        (BinaryOperator, 'binary'),
        (Block, 'block'),
        (Binding, 'binding'),
        (Func, 'func'),
        (Lambda, 'lambda_'),
        (Switch, 'switch'),
        (Quote, 'quote'),
        (Unquote, 'unquote'),
        (MacroDefinition, 'macro_definition'),
    )

    def __init__(self, environment, context=None):
        self.environment = environment
        self.context = context

    def __call__(self, ast):
        for cls, attr in self._type_funs:
            if isinstance(ast, cls):
                return getattr(self, attr)(ast)

        raise MacroExpansionFailure(f'cannot evaluate {ast!r}')

    def run(self, items):
        """ evaluate items in this environment, the value is the last one """
        value = None
        for item in items:
            value = self(item)

        return value

    def literal(self, ast):
        return ast.value

    def identifier(self, ast):
        key = binding_key(ast.name, ast.scope)
        if key in self.environment:
            return self.environment.lookup(key)
        elif isinstance(key, tuple):
            # stamped names nobody bound hygienically resolve at the definition site
            name, scope = key
            for s in scope.chain():
                if s.environment is not None and name in s.environment:
                    return s.environment.lookup(name)

        return self.environment.lookup(key)

    def list_literal(self, ast):
        return [self(i) for i in ast.items]

    def tuple(self, ast):
        return tuple(self(i) for i in ast.items)

    def call(self, ast):
        function = self(ast.target)
        if not callable(function):
            raise TypeError(f'{function!r} is not callable')

        return function(*[self(a) for a in ast.arguments])

    def lookup(self, ast):
        return getattr(self(ast.target), ast.name)

    def unary(self, ast):
        return UNARY[ast.operator](self(ast.operand))

    def binary(self, ast):
        op = ast.operator
        if op == '=':
            return self.environment.assign(_key(ast.left), self(ast.right))
        elif op == '&&':
            return self(ast.left) and self(ast.right)
        elif op == '||':
            return self(ast.left) or self(ast.right)

        return BINARY[op](self(ast.left), self(ast.right))

    def block(self, ast):
        return Evaluator(self.environment.child(), self.context).run(ast.items)

    def binding(self, ast):
        return self.environment.define(_key(ast.target), self(ast.value))

    def func(self, ast):
        closure = Closure(ast.parameters, ast.body, self.environment, self.context,
                          name=str(ast.name.name))
        return self.environment.define(_key(ast.name), closure)

    def lambda_(self, ast):
        return Closure(ast.parameters, ast.body, self.environment, self.context)

    def switch(self, ast):
        subject = self(ast.subject)
        for case in ast.cases:
            pattern = case.pattern
            if (isinstance(pattern, Identifier) and pattern.name == WILDCARD or
                self(pattern) == subject):
                return self(case.body)

    def quote(self, ast):
        return quoting.instantiate(ast, self.environment, self.context)

    def unquote(self, ast):
        raise MacroExpansionFailure('unquote outside of a quote')

    def macro_definition(self, ast):
        # macros only exist while expanding
        return None


def evaluate(ast, environment, context=None):
    return Evaluator(environment, context)(ast)


def run(items, environment, context=None):
    return Evaluator(environment, context).run(items)


def builtins(context):
    """ names every compile time environment starts with """
    return {
        'gensym': lambda name=None: quoting.gensym(context, name),
        'expanded': lambda name: quoting.expanded(context, name),
        'quasiquote': lambda text, **splices: quoting.quasiquote(context, text, **splices),
        'len': len,
        'list': list,
        'str': str,
        'print': print,
        'is_ast': lambda thing: isinstance(thing, Ast),
        **NODES,
    }
