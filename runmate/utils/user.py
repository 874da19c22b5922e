# runmate/utils/user.py

def get_display_name(first_name: str = "", last_name: str = "", email: str = "") -> str:
    """
    Display name of a user:
    1. first_name and last_name joined with a space (either may be missing).
    2. Otherwise the local part of the email.
    """
    name = " ".join(filter(None, [first_name, last_name]))
    if name.strip():
        return name.strip()
    if email:
        return email.split("@", 1)[0]
    return ""
