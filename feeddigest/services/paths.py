from flask import current_app


def build_url_root(recipient=None):
    root = getattr(recipient, "url_root", None) or current_app.config.get("APP_URL", "")
    return root.rstrip("/")


def complete_url(url_root, path):
    return f"{url_root.rstrip('/')}/{path.lstrip('/')}"


def absolute_url(path):
    return complete_url(build_url_root(), path)
