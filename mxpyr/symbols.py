""" symbols, scopes and the table that issues them

a symbol table lives exactly as long as one compilation unit, nothing
it issues is ever released before then """

from itertools import count


class Scope:
    """ hygiene context stamped onto quoted syntax

    scopes compare by identity, two scopes with the same name are still
    different scopes """

    def __init__(self, uid, name=None, parent=None, environment=None):
        self.uid = uid
        self.name = name
        self.parent = parent
        self.environment = environment

    def chain(self):
        scope = self
        while scope is not None:
            yield scope
            scope = scope.parent

    def __repr__(self):
        return f'<scope {self.name or ""}#{self.uid}>'


class Symbol:

    __slots__ = ('uid', 'name')

    def __init__(self, uid, name=None):
        self.uid = uid
        self.name = name

    @property
    def key(self):
        """ what this symbol is bound under in an environment """
        return self

    def __eq__(self, other):
        return type(self) == type(other) and self.uid == other.uid

    def __hash__(self):
        return hash((self.__class__, self.uid))

    def __str__(self):
        # % never appears in an identifier so this spelling cannot be read back
        return f'{self.name or "g"}%{self.uid}'

    def __repr__(self):
        return f'<{self.__class__.__name__[:3].lower()} {self}>'


class LexicalSymbol(Symbol):
    """ hygienic, resolves where it was created """

    __slots__ = ('scope',)

    def __init__(self, uid, name=None, scope=None):
        super().__init__(uid, name)
        self.scope = scope


class ExpandedSymbol(Symbol):
    """ opts out of hygiene, resolves by name at the call site """

    __slots__ = ()

    @property
    def key(self):
        return self.name

    def __eq__(self, other):
        return type(self) == type(other) and self.name == other.name

    def __hash__(self):
        return hash((self.__class__, self.name))

    def __str__(self):
        return self.name


def binding_key(name, scope=None):
    """ resolve the name of an identifier to an environment key

    plain names from user source resolve at the call site, plain names
    stamped by a quote resolve against the scope of that quote, symbols
    decide for themselves """
    if isinstance(name, Symbol):
        return name.key
    elif scope is not None:
        return name, scope
    else:
        return name


class SymbolTable:

    def __init__(self):
        self._uids = count(1)
        self._issued = []
        self._scopes = []

    def __len__(self):
        return len(self._issued)

    def __iter__(self):
        return iter(self._issued)

    def _issue(self, symbol):
        self._issued.append(symbol)
        return symbol

    def gensym(self, name=None, scope=None):
        return self._issue(LexicalSymbol(next(self._uids), name, scope))

    def expanded(self, name):
        if not name:
            raise ValueError('expanded symbols must have a name')
        return self._issue(ExpandedSymbol(next(self._uids), name))

    def scope(self, name=None, parent=None, environment=None):
        scope = Scope(next(self._uids), name, parent, environment)
        self._scopes.append(scope)
        return scope
