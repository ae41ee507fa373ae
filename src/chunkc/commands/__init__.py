"""Click plumbing shared by the chunkc command line."""
