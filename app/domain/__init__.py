"""Domain types shared by services and routes: roles, errors, access tokens."""
