"""Cal.com collaborator: booking record source and mutation calls."""
