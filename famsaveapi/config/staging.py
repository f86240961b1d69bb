SETTINGS = {"logging": {"level": "DEBUG"}}
