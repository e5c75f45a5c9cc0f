"""
Command implementations for chainscript.

Each module corresponds to a top-level CLI command:
- deploy:     Deploy a contract from a build artifact and report its token info
- batch_mint: Mint a run of token URIs in a single batchMint transaction
- call:       Read-only / static call, prints the decoded return value
- send:       Send any state-changing call; ``receipt`` waits for one
"""
