"""Fact extraction engine for "No Such Thing As A Fish" episode transcripts."""
