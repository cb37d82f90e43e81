"""TerraSpec: unit testing for Terraform modules against mocked plans."""

__version__ = "0.3.0"
