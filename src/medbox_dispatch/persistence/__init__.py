"""Persistence adapters. MongoDB is the only production store."""
