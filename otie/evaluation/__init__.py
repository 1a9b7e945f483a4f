"""Replay reporting."""
