""" expand source one top level item at a time

    expand = configure(**conf_host)
    for item in expand('var x = 1; if x == 1 { "one" }'):
        print(item)
"""

import logging
from io import TextIOWrapper

from . import builtins
from .context import Context
from .errors import MxpyrError
from .expander import Expander, MAX_DEPTH
from .lexer import foreign
from .nodes import Block
from .readers import CharReader
from .readtable import ReadtableStack

__version__ = '0.0.1'

debug = False

log = logging.getLogger(__name__)


class Unit:
    """ the result of expanding a whole compilation unit

    either the items or the diagnostics, never a part of both """

    def __init__(self, items=(), diagnostics=(), context=None):
        self.items = list(items)
        self.diagnostics = list(diagnostics)
        self.context = context

    @property
    def ok(self):
        return not self.diagnostics

    @property
    def ast(self):
        return Block(self.items) if self.ok else None

    def run(self):
        """ evaluate the items at compile time, mostly for tests """
        return self.context.run(self.items)

    def __repr__(self):
        if self.ok:
            return f'<unit {len(self.items)} items>'
        return f'<unit {len(self.diagnostics)} diagnostics>'


def _chars(source, name):
    if isinstance(source, CharReader):
        return source

    return CharReader(source, name=name)


def configure(readtable=None,
              named=None,
              whitelist=None,
              pattern_macros=None,
              max_depth=MAX_DEPTH,
              environment=None,
              **kwargs):

    if debug:
        logging.getLogger('mxpyr').setLevel(logging.DEBUG)

    if readtable is None:
        readtable = builtins.host

    if named is None:
        named = builtins.named

    def new_context(name=None):
        readtables = ReadtableStack(readtable, whitelist=whitelist, named=named)
        return Context(readtables, bindings=environment, name=name)

    def expand(source, name=None, syntax=None, context=None):
        """ a generator of fully expanded items

        syntax names a reader macro that owns the source from its first
        character, context can be a Context to expand into """
        if context is None:
            context = new_context(name)

        chars = _chars(source, name)
        with context.readtables.extent():
            tokens = (foreign(chars, context, syntax) if syntax is not None else
                      context.token_reader(chars))
            parser = context.parser(tokens)
            expander = Expander(context, pattern_macros, max_depth)
            while True:
                items = parser.parse_item()
                if items is None:
                    break

                for item in items:
                    if debug:
                        log.debug('parsed: %r', item)
                    yield from expander.expand(item)

    def expand_unit(source, name=None, syntax=None):
        ctx = new_context(name)
        try:
            items = list(expand(source, name, syntax, context=ctx))
        except MxpyrError as e:
            log.debug('unit %s failed with %s', name, e.kind)
            return Unit(diagnostics=[e.diagnostic()], context=ctx)

        return Unit(items, context=ctx)

    expand.unit = expand_unit
    return expand


def expand_unit(source, name=None, syntax=None, **conf):
    """ one Unit for one source, conf as for configure """
    return configure(**conf).unit(source, name, syntax)


def make_do_path(do, chunksize=4096):
    """ apply expand or expand_unit to a path or an open file """
    def do_path(path_or_fd):
        if isinstance(path_or_fd, TextIOWrapper):  # stdin probably
            def path_gen():
                f = path_or_fd
                while True:
                    data = f.read(chunksize)
                    if not data:
                        break
                    yield from data

            return do(CharReader(path_gen(), name=getattr(path_or_fd, 'name', None)))

        return do(CharReader.from_path(path_or_fd, chunksize))

    return do_path
