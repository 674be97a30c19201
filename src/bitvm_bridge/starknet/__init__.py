"""Starknet integration: felt serde, RPC client, event decoding and monitoring."""
