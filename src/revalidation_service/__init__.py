"""On-demand page revalidation service for the blog frontend."""
