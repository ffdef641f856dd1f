"""web/ -- Server-rendered admin shell (login form and dashboard)."""
