"""docsfront: client-side interaction core for a documentation site.

docsfront models the interactive widgets of rendered documentation pages
as plain Python state machines that an end-to-end suite can drive and
assert on.

Key features:
    - Content pickers (platform / tool / language / version) with
      persisted preferences and minitoc tracking
    - Article survey widget with analytics emission
    - Search overlay with debounced, last-issued-wins suggestions
    - Hover card previews for internal article links
    - Locale and version negotiation with cookie redirects
    - Fixture API server for the analytics sink and suggestion endpoint

Example:
    >>> from docsfront.session import BrowsingSession
    >>> async with BrowsingSession.from_env() as session:
    ...     page = await session.navigate("/get-started/foo/for-playwright")
    ...     page.survey.vote("up")
"""

__all__ = ["__version__"]

__version__ = "0.3.0"
