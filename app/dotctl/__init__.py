"""dotctl - Declarative dotfiles and machine credential management.

Links shared configuration packages into the home directory, provisions
machine-local credentials outside the shared tree, and gates interactive
sessions on key encryption.
"""

__version__ = "0.4.0"
