"""
Configuration management for coseq pipelines.
"""

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Strategy(Enum):
    """Execution strategy a pipeline may be driven by."""
    AUTO = "auto"
    SYNC = "sync"
    ASYNC = "async"


@dataclass
class CoseqConfig:
    """Configuration for pipeline construction and execution."""
    
    # Which strategy a chain may be driven by
    strategy: Strategy = Strategy.AUTO
    
    # Log every stage outcome at DEBUG level
    trace: bool = False
    
    # Seconds per delay() unit
    time_scale: float = 0.001  # milliseconds
    
    _instance: Optional['CoseqConfig'] = None
    
    def __post_init__(self):
        """Normalize strategy names."""
        if not isinstance(self.strategy, Strategy):
            self.strategy = Strategy(self.strategy)
    
    @classmethod
    def get_instance(cls) -> 'CoseqConfig':
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance
    
    @classmethod
    def set_defaults(cls, **kwargs) -> None:
        """Set default configuration values."""
        instance = cls.get_instance()
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        instance.__post_init__()
    
    def derive(self, **overrides: Any) -> 'CoseqConfig':
        """Return a copy with the given options overridden."""
        known = {f.name for f in fields(self) if not f.name.startswith("_")}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown pipeline option(s): {', '.join(sorted(unknown))}")
        
        derived = replace(self, **overrides)
        logger.debug(f"Derived pipeline config: {derived}")
        return derived
    
    def allows(self, strategy: Strategy) -> bool:
        """Check whether a chain with this config may run under strategy."""
        return self.strategy in (Strategy.AUTO, strategy)
    
    def delay_seconds(self, units: float) -> float:
        """Convert a delay() duration to seconds."""
        return max(0.0, units * self.time_scale)


# Global configuration instance
config = CoseqConfig.get_instance()
