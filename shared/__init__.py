"""Shared components for the chat backend services."""
