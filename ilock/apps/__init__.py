"""Applications that connect to the token through sockets."""
