"""Metric models and the collector that updates and reads them."""