"""Wallet-identified player identity: sync, rename and error presentation."""
