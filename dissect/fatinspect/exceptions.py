class Error(Exception):
    pass


class TruncatedImage(Error):
    pass


class InvalidEntrySize(Error):
    pass
