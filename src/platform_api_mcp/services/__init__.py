# Services package
# Schema retrieval, compilation, proxying and tool registration
