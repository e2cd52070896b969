"""Learning-path generation backend: response cache, validators and quiz analysis."""
