"""deltadeploy - Differential static site deployment."""
