"""
Stencil Template Function Resolution

Text templates with layered function scopes: engine builtins, functions
registered on a template set before parsing, and functions supplied to a
single execution.
"""

__version__ = "0.1.0"


from ._error import *
from ._once import *
from ._func import *
from ._scope import *
from ._builtin import *
from ._resolve import *
from ._parse import *
from ._exec import State, NO_VALUE
from ._template import *
