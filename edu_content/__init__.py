"""Content tree service for textbooks, past papers and study guides."""
