"""
Loom's Gap Engine

Competitive backlink gap analysis:
1. Resolves a site's organic competitors from Ahrefs (or a manual list)
2. Fetches every referring-domain profile concurrently
3. Finds domains that link to several competitors but not the site
4. Scores each gap (Thread Resonance) and grades the site's Thread Starvation
"""

__version__ = "0.1.0"
