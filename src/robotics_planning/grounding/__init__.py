"""Import functions that ground action strings into instantiated actions."""

from .grounder import get_action_from_string as get_action_from_string
from .grounder import get_name as get_name
from .grounder import get_params as get_params
from .grounder import ground as ground
