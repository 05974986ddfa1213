"""agentstream command line."""
