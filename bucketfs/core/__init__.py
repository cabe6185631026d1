"""
Core file manager logic.

This module is framework-agnostic - it doesn't import FastAPI or boto3.
It only talks to the ObjectStore protocol, so the whole filesystem
simulation can be tested against the in-memory store.
"""
