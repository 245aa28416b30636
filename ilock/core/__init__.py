"""Ambient pieces shared by every component: errors, logging, configuration."""
