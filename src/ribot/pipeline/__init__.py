from ._pipeline import Pipeline
from ._stage import Stage

__all__ = ['Pipeline', 'Stage']
