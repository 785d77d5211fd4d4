"""Core building blocks shared by every workshop-runner component."""
