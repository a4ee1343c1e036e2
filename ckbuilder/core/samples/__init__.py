from .merger import SamplesMerger, link_to_sample, meta_information, plugins_section

__all__ = ["SamplesMerger", "link_to_sample", "meta_information", "plugins_section"]
