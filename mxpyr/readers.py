""" readers and writers, the two capabilities every pipeline stage is built from

a reader is a lazy, peekable, finite sequence of items, lookahead is
unlimited and addressable by offset, which macro authors may use for
arbitrary backtracking, the host grammar itself never looks further
than one token tree ahead """

import logging
from abc import ABC, abstractmethod

from .errors import MxpyrError, ReaderFailure, Point

log = logging.getLogger(__name__)


class Reader(ABC):

    def __init__(self):
        self._buffer = []
        self._done = False
        self.consumed = 0

    @abstractmethod
    def _produce(self):
        """ return a list of the next items, possibly empty, or None at the end """

    def _fill(self, amount):
        while len(self._buffer) < amount and not self._done:
            try:
                items = self._produce()
            except MxpyrError:
                raise
            except (OSError, UnicodeDecodeError) as e:
                raise ReaderFailure(f'{e.__class__.__name__}: {e}') from e

            if items is None:
                self._done = True
            else:
                self._buffer.extend(items)

    def _consume(self, items):
        """ hook called with whatever leaves the buffer """
        self.consumed += len(items)

    def read_many(self, amount):
        """ up to amount items, fewer only at the end of the source """
        self._fill(amount)
        items = self._buffer[:amount]
        del self._buffer[:amount]
        self._consume(items)
        return items

    def peek_many(self, amount, start=0):
        """ lookahead that consumes nothing, start is an offset from the next item """
        self._fill(start + amount)
        return self._buffer[start:start + amount]

    def discard(self, amount=1):
        """ consume without handing anything back, True if all of amount was there """
        self._fill(amount)
        items = self._buffer[:amount]
        del self._buffer[:amount]
        self._consume(items)
        return len(items) == amount

    def read(self):
        items = self.read_many(1)
        return items[0] if items else None

    def peek(self):
        return self.peek_nth(0)

    def peek_nth(self, n):
        items = self.peek_many(1, start=n)
        return items[0] if items else None

    def match_nth(self, n, matches):
        item = self.peek_nth(n)
        return item is not None and bool(matches(item))

    def skip_until(self, matches):
        """ discard until matches holds for the next item

        running out of items is an ordinary outcome reported as False """
        while True:
            item = self.peek()
            if item is None:
                return False
            elif matches(item):
                return True
            self.discard()

    @property
    def is_finished(self):
        return not self.peek_many(1)

    def unconsumed(self):
        """ everything already produced but not yet consumed, it is removed """
        items, self._buffer = self._buffer, []
        return items

    def __iter__(self):
        while True:
            items = self.read_many(1)
            if not items:
                return
            yield items[0]


class ListReader(Reader):

    def __init__(self, items=()):
        super().__init__()
        self._buffer = list(items)
        self._done = True

    def _produce(self):
        return None


class IterReader(Reader):

    def __init__(self, iterable):
        super().__init__()
        self._iterator = iter(iterable)

    def _produce(self):
        for item in self._iterator:
            return [item]

        return None


class CharReader(IterReader):
    """ characters with the point of the next one tracked """

    def __init__(self, source, name=None, line=1, column=0):
        if isinstance(source, str):
            super().__init__(())
            self._buffer = list(source)
            self._done = True
        else:
            super().__init__(source)

        self.name = name
        self.line = line
        self.column = column

    @classmethod
    def from_path(cls, path, chunksize=4096):
        """ lazily read a file in chunks """
        def path_gen():
            with open(path, 'rt') as f:
                while True:
                    data = f.read(chunksize)
                    if not data:
                        break
                    yield from data

        return cls(path_gen(), name=str(path))

    def _consume(self, items):
        super()._consume(items)
        for i, char in enumerate(items):
            if char == '\n' or char == '\r' and (
                    # a \r\n pair breaks the line once
                    (items[i + 1] if i + 1 < len(items) else self.peek()) != '\n'):
                self.line += 1
                self.column = 0
            else:
                self.column += 1

    @property
    def point(self):
        return Point(self.consumed, self.line, self.column, self.name)

    def peek_text(self, amount, start=0):
        return ''.join(self.peek_many(amount, start))

    def read_text(self, amount):
        return ''.join(self.read_many(amount))


class Writer(ABC):

    @abstractmethod
    def write(self, item):
        """ accept one item """

    def write_many(self, items):
        for item in items:
            self.write(item)


class ListWriter(Writer):

    def __init__(self, accepts=None):
        self.items = []
        self._accepts = accepts

    def write(self, item):
        if self._accepts is not None and not isinstance(item, self._accepts):
            raise TypeError(f'{self.__class__.__name__} cannot accept {item!r}')
        self.items.append(item)

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.items!r}>'
