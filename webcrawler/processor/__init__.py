"""
Worker pool that drains the link queue.
"""

from .manager import ProcessorManager
from .processor import DocumentSink, Processor
from .state import InvalidTransitionError, ProcessorState, ProcessorStatus

__all__ = [
    'ProcessorManager', 'Processor', 'DocumentSink',
    'ProcessorState', 'ProcessorStatus', 'InvalidTransitionError'
]
