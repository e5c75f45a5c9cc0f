"""
On-chain interaction layer for chainscript.

Provides the JSON-RPC client, ABI handling, and the transaction submitter
(connect / bind / invoke / wait_for_confirmation / deploy).

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
