# -*- coding: utf-8 -*
"""Multiple dispatch with CLOS-style method combination.

Generic functions choose their implementation by the run-time types of all
of their arguments, and combine `:primary`, `:before`, `:after` and `:around`
methods into one call.

See ``dir(closdispatch)`` and submodule docstrings for more.
"""

__version__ = '0.1.0'

from .dispatcher import *  # noqa: F401, F403
from .errors import *  # noqa: F401, F403
from .markers import *  # noqa: F401, F403
from .registry import *  # noqa: F401, F403
from .typetags import *  # noqa: F401, F403
