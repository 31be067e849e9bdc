"""Artist discovery: collaborative, content and genre based artist recommendations."""
