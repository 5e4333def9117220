""" error kinds raised while expanding a compilation unit

every failure is a catchable exception so that an enclosing macro can
recover, only the kinds marked fatal make further expansion of the
unit meaningless """


class Point:
    """ a position in a character stream """

    __slots__ = ('offset', 'line', 'column', 'name')

    def __init__(self, offset=0, line=1, column=0, name=None):
        self.offset = offset
        self.line = line
        self.column = column
        self.name = name

    def __eq__(self, other):
        return (type(self) == type(other) and
                (self.offset, self.line, self.column, self.name) ==
                (other.offset, other.line, other.column, other.name))

    def __hash__(self):
        return hash((self.__class__, self.offset, self.line, self.column, self.name))

    def __repr__(self):
        where = f'{self.name}:' if self.name else ''
        return f'<pt {where}{self.line}:{self.column}>'


class Diagnostic:
    """ what a user sees when expansion fails """

    def __init__(self, kind, message, macro=None, point=None, fatal=False):
        self.kind = kind
        self.message = message
        self.macro = macro
        self.point = point
        self.fatal = fatal

    @property
    def line(self):
        return self.point.line if self.point is not None else None

    @property
    def column(self):
        return self.point.column if self.point is not None else None

    @property
    def offset(self):
        return self.point.offset if self.point is not None else None

    @property
    def name(self):
        return self.point.name if self.point is not None else None

    def __repr__(self):
        return f'<diag {self.kind} {self.message!r}>'

    def __str__(self):
        where = ''
        if self.point is not None:
            where = f'{self.name or "<unit>"}:{self.line}:{self.column}: '
        macro = f' in macro {self.macro}' if self.macro else ''
        return f'{where}{self.kind}{macro}: {self.message}'


class MxpyrError(Exception):

    fatal = False

    def __init__(self, message='', macro=None, point=None):
        super().__init__(message)
        self.message = message
        self.macro = macro
        self.point = point

    @property
    def kind(self):
        return self.__class__.__name__

    def at(self, point=None, macro=None):
        """ fill in location details that were not known where this was raised """
        if self.point is None:
            self.point = point
        if self.macro is None:
            self.macro = macro
        return self

    def diagnostic(self):
        return Diagnostic(self.kind, self.message, self.macro, self.point, self.fatal)

    def __str__(self):
        return str(self.diagnostic())


class ReaderFailure(MxpyrError):
    """ the underlying source of a reader failed """


class ParseError(MxpyrError):
    """ the token stream is not valid host syntax """


class UnbalancedGrouping(ParseError):
    fatal = True


class UnknownTrigger(MxpyrError): pass
class BindingNotPermitted(MxpyrError): pass


class MismatchedUnbind(MxpyrError):
    fatal = True


class InvalidSpliceType(MxpyrError, TypeError): pass


class MacroExpansionFailure(MxpyrError):
    """ a user handler failed, the cause is chained """
