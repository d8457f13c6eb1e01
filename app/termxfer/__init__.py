"""termxfer - dual-pane SFTP/SCP/FTP/FTPS file transfer client for the terminal."""

__version__ = "0.1.0"
