"""PeteMC status/control bot for a single Minecraft server."""
