"""Backend shims adding functionality between a store and its backend"""
