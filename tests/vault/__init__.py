"""
Vault Tests — custody, issuance and end-game guarantees.

Test Sections:
    Deposits           single-asset custody and issuance
    Batch deposits     all-or-nothing deposit_many
    Withdrawals        redemption and authorization
    End game           completion, capstone, custody lock
    Operator           artwork metadata and role separation
    Transfers          wrapper-token transfers and withdrawal rights
    Attestations       every decision is recorded
    Invariants         consistency checks and randomized sequences
    Concurrency        serialized execution under racing callers
    Journal            compensating rollback

Acceptance Rule:
    A caller never extracts an original without surrendering its
    wrapper token, and a failed request leaves custody untouched.
"""
