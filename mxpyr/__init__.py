from .mxpyr import (
    configure,
    expand_unit,
    make_do_path,
    Unit,
    __version__)

# errors
from .errors import (
    Point,
    Diagnostic,
    MxpyrError,
    ReaderFailure,
    ParseError,
    UnbalancedGrouping,
    UnknownTrigger,
    BindingNotPermitted,
    MismatchedUnbind,
    InvalidSpliceType,
    MacroExpansionFailure,)

# ast nodes
from .nodes import (
    Ast,
    Identifier,
    Literal,
    ListLiteral,
    Tuple,
    Call,
    Lookup,
    UnaryOperator,
    BinaryOperator,
    Block,
    Binding,
    Func,
    Lambda,
    Case,
    Switch,
    Quote,
    Unquote,
    MacroDefinition,)

# macro author surface
from .readers import (
    Reader,
    Writer,
    CharReader,
    ListReader,
    ListWriter,)
from .pipeline import (
    Pipeline,
    SymmetricPipeline,
    AsymmetricPipeline,
    CharPipeline,
    TokenPipeline,
    AstPipeline,
    AnnotationPipeline,
    OrderedSinks,)
from .readtable import (
    Readtable,
    ReadtableEntry,
    ReadtableStack,
    reader,
    procedural,
    pattern,
    annotation,)
from .expander import PatternMacro
from .quoting import quasiquote, gensym, expanded
from .symbols import Symbol, LexicalSymbol, ExpandedSymbol, binding_key

# configs
from .builtins import (
    conf_host,
    conf_strict)
