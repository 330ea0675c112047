"""HTTP server that stores and serves gauge and counter metrics."""