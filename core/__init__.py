"""
Core Package

Contains the source-agnostic building blocks of the rate engine:
- Schemas: Pydantic models for samples and derived presentation data
- LiveBuffer: bounded FIFO window of live samples
- Errors: advisory error taxonomy (FetchFailed, LiveConnectionLost, MalformedSample)
- Config and logging shared by every other package
"""
