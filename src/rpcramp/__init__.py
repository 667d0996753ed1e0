"""rpcramp: ramp up concurrent load against JSON-RPC endpoints."""

from __future__ import annotations

from rpcramp.engine.config import LoadTestConfig, RunConfig
from rpcramp.engine.endpoints import EndpointSet
from rpcramp.engine.ramp import RampController, ramp_sequence
from rpcramp.engine.runner import LoadTestRunner
from rpcramp.engine.shutdown import ShutdownCoordinator, ShutdownSignal
from rpcramp.metrics.models import LoadTestResult, RunResult
from rpcramp.metrics.stats import RunStats
from rpcramp.rpc.client import JsonRpcClient, RpcResponse
from rpcramp.rpc.request import JsonRpcRequest
from rpcramp.rpc.sources import (
    LineProducer,
    RequestSource,
    StaticRequestSource,
    StreamingRequestSource,
)

__version__ = "0.1.0"

__all__ = [
    "EndpointSet",
    "JsonRpcClient",
    "JsonRpcRequest",
    "LineProducer",
    "LoadTestConfig",
    "LoadTestResult",
    "LoadTestRunner",
    "RampController",
    "RequestSource",
    "RpcResponse",
    "RunConfig",
    "RunResult",
    "RunStats",
    "ShutdownCoordinator",
    "ShutdownSignal",
    "StaticRequestSource",
    "StreamingRequestSource",
    "ramp_sequence",
]
