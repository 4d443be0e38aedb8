"""
paper — In-memory stand-ins for the deployed token and reserve funding contract.
"""

from .token import PaperRevert, PaperToken
from .reserve_funding import Faults, PaperReserveFunding
