"""Import classes representing world states and the knowledge bases that back them."""

from .knowledge_base import KnowledgeBaseClient as KnowledgeBaseClient
from .knowledge_base import Problem as Problem
from .world_state import KnowledgeBaseWorldState as KnowledgeBaseWorldState
from .world_state import LocalWorldState as LocalWorldState
from .world_state import WorldState as WorldState
