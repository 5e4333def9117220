""" readtables and the dynamically scoped stack of them

the stack is a value carried by the expansion context, never module
state, so independent compilation units cannot see each other's binds """

import logging
from contextlib import contextmanager

from .errors import BindingNotPermitted, MismatchedUnbind, UnknownTrigger
from .tokens import is_identifier_continue

log = logging.getLogger(__name__)

READER = 'reader'
PROCEDURAL = 'procedural'
PATTERN = 'pattern'
ANNOTATION = 'annotation'

KINDS = READER, PROCEDURAL, PATTERN, ANNOTATION


class ReadtableEntry:

    __slots__ = ('trigger', 'handler', 'kind', 'name')

    def __init__(self, trigger, handler, kind=READER, name=None):
        if kind not in KINDS:
            raise ValueError(f'unknown macro kind {kind!r}')
        if not isinstance(trigger, str) or not trigger:
            raise ValueError(f'bad trigger {trigger!r}')
        if kind != READER and not trigger.isidentifier():
            raise ValueError(f'{kind} macros are triggered by identifiers not {trigger!r}')

        self.trigger = trigger
        self.handler = handler
        self.kind = kind
        self.name = name if name is not None else trigger

    def __repr__(self):
        return f'<entry {self.kind} {self.trigger!r}>'


def reader(trigger, name=None):
    """ decorator sugar for reader macro entries """
    def inner(handler):
        return ReadtableEntry(trigger, handler, READER, name)
    return inner


def procedural(handler, name=None):
    return ReadtableEntry(name or handler.__name__, handler, PROCEDURAL)


def annotation(handler, name=None):
    return ReadtableEntry(name or handler.__name__, handler, ANNOTATION)


def pattern(handler, name=None):
    return ReadtableEntry(name or handler.__name__, handler, PATTERN)


class Readtable:
    """ immutable mapping from (kind, trigger) to an entry """

    def __init__(self, entries=(), name=None):
        self.name = name
        self._entries = {}
        for entry in entries:
            self._entries[entry.kind, entry.trigger] = entry

        # longest match first, ties cannot happen since triggers are keys
        self._reader_triggers = sorted(
            (trigger for kind, trigger in self._entries if kind == READER),
            key=lambda t: (-len(t), t))

    def extend(self, entries, name=None):
        if isinstance(entries, Readtable):
            entries = list(entries)
        return self.__class__(list(self) + list(entries),
                              name=name if name is not None else self.name)

    def without(self, *triggers, kind=READER):
        return self.__class__(
            [e for e in self if not (e.kind == kind and e.trigger in triggers)],
            name=self.name)

    def lookup(self, kind, trigger):
        return self._entries.get((kind, trigger))

    def match_reader(self, chars):
        """ the reader macro whose trigger starts at the next character """
        for trigger in self._reader_triggers:
            if chars.peek_text(len(trigger)) != trigger:
                continue
            if (is_identifier_continue(trigger[-1]) and
                is_identifier_continue(chars.peek_nth(len(trigger)))):
                # iffy is an identifier not an if
                continue

            return self._entries[READER, trigger]

    def __contains__(self, key):
        return key in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f'<readtable {self.name or ""} {len(self)}>'


class ReadtableStack:
    """ strict lifo discipline across the whole expansion call graph

    a module whitelist restricts what may be bound, None permits anything,
    an empty whitelist forbids all rebinding """

    def __init__(self, base, whitelist=None, named=None):
        self._stack = [base]
        self._names = [base.name]
        self._floors = [1]
        self.whitelist = None if whitelist is None else frozenset(whitelist)
        self.named = dict(named or {})
        self.history = []

    @property
    def current(self):
        return self._stack[-1]

    @property
    def depth(self):
        return len(self._stack)

    @property
    def names(self):
        return tuple(self._names)

    def lookup(self, kind, trigger):
        return self.current.lookup(kind, trigger)

    def match_reader(self, chars):
        return self.current.match_reader(chars)

    def _check(self, names):
        if self.whitelist is None:
            return

        for name in names:
            if name not in self.whitelist:
                raise BindingNotPermitted(
                    f'binding {name!r} is not permitted in this module', macro=name)

    def bind(self, table, name=None, replace=False):
        """ push a new table, return the depth that must be used to unbind it """
        if isinstance(table, Readtable):
            names = [name or table.name]
            if not replace:
                table = self.current.extend(table, name=name or table.name)
        else:
            entries = list(table)
            names = [name] if name else [e.name for e in entries]
            table = self.current.extend(entries, name=name)

        self._check(names)
        self._stack.append(table)
        self._names.append(name or table.name)
        depth = len(self._stack)
        self.history.append(('bind', depth, self._names[-1]))
        log.debug('bind %s at depth %s', self._names[-1], depth)
        return depth

    def unbind(self, depth=None):
        """ pop the innermost table, depth must be the one bind returned """
        if len(self._stack) <= self._floors[-1]:
            raise MismatchedUnbind('nothing was bound in this extent')
        if depth is not None and depth != len(self._stack):
            raise MismatchedUnbind(
                f'unbind for depth {depth} while the stack is at depth {len(self._stack)}',
                macro=self._names[-1])

        depth = len(self._stack)
        self._stack.pop()
        name = self._names.pop()
        self.history.append(('unbind', depth, name))
        log.debug('unbind %s from depth %s', name, depth)

    def use(self, name):
        """ bind one of the named readtables in place of the current one """
        if name not in self.named:
            raise UnknownTrigger(f'no readtable named {name!r}', macro=name)

        return self.bind(self.named[name], name=name, replace=True)

    def _unwind(self, depth):
        while len(self._stack) > depth:
            name = self._names.pop()
            self._stack.pop()
            self.history.append(('unwind', len(self._stack) + 1, name))
            log.debug('unwind %s', name)

    @contextmanager
    def bound(self, table, name=None, replace=False):
        depth = self.bind(table, name, replace)
        try:
            yield depth
        except BaseException:
            self._unwind(depth - 1)
            raise

        self.unbind(depth)

    @contextmanager
    def guard(self):
        """ a failing macro never leaves its pushes behind """
        depth = len(self._stack)
        try:
            yield
        except BaseException:
            self._unwind(depth)
            raise

    @contextmanager
    def extent(self):
        """ the lexical extent of a group or unit, binds left open end with it """
        floor = len(self._stack)
        self._floors.append(floor)
        try:
            yield
        finally:
            self._floors.pop()
            self._unwind(floor)
