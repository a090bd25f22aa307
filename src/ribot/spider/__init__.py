from ._spider import Spider

__all__ = ['Spider']
