"""deckhouse-status: is the Deckhouse preview build on this cluster up to date?"""

__version__ = "0.3.0"
