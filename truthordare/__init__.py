"""Truth or Dare API: tagged truth/dare prompts over SQLite."""
