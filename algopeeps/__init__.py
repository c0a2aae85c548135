"""Algopeeps - live editor events fanned out to an OpenCode agent council."""
