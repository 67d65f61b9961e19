"""On-chain boundary: contract gateway interface and the JSON-RPC implementation."""

from chain.gateway import ContractCall, ContractGateway, RegistrationReceipt, SigningAccount, SubmittedTransaction
from chain.rpc_gateway import RpcContractGateway

__all__ = [
    "ContractCall",
    "ContractGateway",
    "RegistrationReceipt",
    "RpcContractGateway",
    "SigningAccount",
    "SubmittedTransaction",
]
