from .conditional_access import ConditionalAccessCollector

__all__ = [
    "ConditionalAccessCollector",
]
