"""Scheduling engines that run real OS commands under classical CPU scheduling policies."""

from .unit import Unit, UnitSpec, UnitStatus
from .engine import Engine, EngineResult, MlfqConfig, RoundRobinConfig
from .engines import FcfsEngine, MlfqEngine, OnlineMlfqEngine, OnlineSjfEngine, RoundRobinEngine
from .errors import ControlSignalError, ExitRequested, SchedulingError, SpawnError
from . import admission
from . import controller
from . import estimator
from . import evaluation
from . import metrics
from . import sink
from . import workload

__all__ = [
	"Unit",
	"UnitSpec",
	"UnitStatus",
	"Engine",
	"EngineResult",
	"MlfqConfig",
	"RoundRobinConfig",
	"FcfsEngine",
	"RoundRobinEngine",
	"MlfqEngine",
	"OnlineMlfqEngine",
	"OnlineSjfEngine",
	"SchedulingError",
	"SpawnError",
	"ControlSignalError",
	"ExitRequested",
	"admission",
	"controller",
	"estimator",
	"evaluation",
	"metrics",
	"sink",
	"workload",
]
