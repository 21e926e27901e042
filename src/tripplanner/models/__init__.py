"""Domain records supplied by the dispatch system."""
