"""Domain services of the admin service: reflections, access requests, and the challenge cache."""
