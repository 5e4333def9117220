""" mxpyr expand macros

Usage:
    mxpyr expand [options] [<path>...]

Options:
    -s --syntax=NAME    reader macro that owns each whole source
    -u --unit           print one block per source or its diagnostics
    -x --strict         forbid rebinding the readtable
    -d --debug
"""

import logging
import pathlib
import sys
import clifn
from mxpyr import mxpyr as mxpyrmod
from mxpyr.builtins import conf_host, conf_strict
from mxpyr.errors import MxpyrError


def readFromStdIn(stdin=None):
    from select import select
    if stdin is None:
        from sys import stdin
    if select([stdin], [], [], 0.0)[0]:
        return stdin


class Options(clifn.Options):

    @property
    def path(self):
        return [pathlib.Path(path).expanduser() for path in self._args['<path>']]


class Main(clifn.Dispatcher):

    def default(self):
        raise NotImplementedError('oops')

    def expand(self):
        mxpyrmod.debug = self.options.debug
        if self.options.debug:
            logging.basicConfig(level=logging.DEBUG)

        conf = conf_strict if self.options.strict else conf_host
        expand = mxpyrmod.configure(**conf)
        syntax = self.options.syntax

        if not self.options.path:
            stdin = readFromStdIn()
            sources = [] if stdin is None else [stdin]
        else:
            sources = self.options.path

        expand_path = mxpyrmod.make_do_path(lambda chars: expand.unit(chars, syntax=syntax))
        failed = []
        units = []
        for source in sources:
            try:
                unit = expand_path(source)
            except MxpyrError as e:
                # failures outside the unit, a bad file for example
                failed.append((source, e))
                continue

            units.append(unit)
            if not unit.ok:
                failed.append((source, unit.diagnostics))
                for diagnostic in unit.diagnostics:
                    print(diagnostic, file=sys.stderr)
            elif self.options.unit:
                print(unit.ast)
            else:
                for item in unit.items:
                    print(item)

        if failed:
            print('expansion failures', len(failed), file=sys.stderr)

        return units


def main():
    options, *ad = Options.setup(__doc__, version='mxpyr ' + mxpyrmod.__version__)

    main = Main(options)

    if main.options.debug:
        print(main.options)

    out = main()
    return out


if __name__ == '__main__':
    main()
