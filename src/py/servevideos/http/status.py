from http import HTTPStatus

# Reason phrases for the status codes, as sent in the response status line.
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}

# EOF
