"""Configuration module for qmoji."""
