from ._worker_pool import WorkerPool

__all__ = ['WorkerPool']
