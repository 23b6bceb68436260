"""Import PDDL-related classes and definitions."""

from .actions import ActionSchema as ActionSchema
from .actions import InstantiatedAction as InstantiatedAction
from .actions import Parameter as Parameter
from .domain import Domain as Domain
from .domain import DomainCollaborator as DomainCollaborator
from .expression_parser import ExpressionParser as ExpressionParser
from .expression_parser import parse_expression as parse_expression
from .expressions import And as And
from .expressions import Arithmetic as Arithmetic
from .expressions import Atom as Atom
from .expressions import Comparison as Comparison
from .expressions import Expression as Expression
from .expressions import FunctionModifier as FunctionModifier
from .expressions import Not as Not
from .expressions import Number as Number
from .expressions import Or as Or
from .expressions import Unknown as Unknown
from .pddl_scanner import PDDLScanner as PDDLScanner
from .pddl_scanner import PDDLToken as PDDLToken
from .pddl_scanner import PDDLTokenType as PDDLTokenType
