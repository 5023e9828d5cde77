from typing import Any, Dict, List

from infra.rpc import AsyncRPC

ADMIN = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
# Hardhat account #0
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

SPLITTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "admin", "type": "address", "internalType": "address"}],
    },
    {
        "type": "function",
        "name": "admin",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address", "internalType": "address"}],
    },
]


class FakeRPC(AsyncRPC):
    """AsyncRPC whose transport is a dict of canned responses.

    A value may be a callable taking the params list; an Exception instance
    is raised instead of returned.
    """

    def __init__(self, responses: Dict[str, Any]):
        super().__init__("http://fake.rpc")
        self.responses = dict(responses)
        self.calls: List[tuple] = []

    async def call(self, method, params, *, timeout_s=None):
        self.calls.append((method, params))
        if method not in self.responses:
            raise AssertionError(f"unexpected rpc call {method}")
        res = self.responses[method]
        if callable(res):
            res = res(params)
        if isinstance(res, Exception):
            raise res
        return res

    def methods(self) -> List[str]:
        return [m for m, _ in self.calls]
