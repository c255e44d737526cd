"""commord: Community diversity and ordination.

Builds Bray-Curtis dissimilarity matrices from sampled communities and
projects them into two dimensions with PCoA and NMDS.
"""

__version__ = "0.1.0"
