"""Account bootstrap faucet: nonce-safe submission, fee estimation and outcome classification."""
