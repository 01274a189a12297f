"""
Guild Auction Queue (GAQ)

An escrowed bid queue prototype:
- Token-backed bids with top-up, partial withdrawal and cancellation
- Lock-up window protecting pending decisions
- Acceptance gated by guild membership shares
- Factory-deployed, independently stored queue instances
"""
