"""JSON API for the loan tracker."""
