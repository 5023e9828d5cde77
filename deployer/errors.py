from __future__ import annotations


class DeployToolError(RuntimeError):
    """Base class for errors that end a tool invocation with exit code 1."""


class ConfigurationError(DeployToolError):
    """Missing or invalid environment, network or artifact."""


class EstimationUnavailable(DeployToolError):
    """Gas units could not be determined (no override, simulation failed)."""


class NoFeeDataAvailable(DeployToolError):
    """Neither an override nor the node supplied a usable fee."""


class ChainClientError(DeployToolError):
    """JSON-RPC failure: transport error, error response or reverted tx."""


class ChainClientTimeout(ChainClientError):
    pass


class PersistenceError(DeployToolError):
    """The deployment document could not be written."""


class VerificationError(DeployToolError):
    """Explorer verification failed. Never fatal for a deployment."""
