"""Agent that samples process and host metrics and reports them to the server."""