from ._models import FinalStatistics
from ._statistics import Statistics

__all__ = ['FinalStatistics', 'Statistics']
