"""Adjacency-list tree queries for Django models."""

__version__ = "0.1.0"
