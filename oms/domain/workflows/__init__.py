"""Workflow domain - templates, step materialization and completion side effects"""
