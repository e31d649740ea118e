"""Result and record models."""
