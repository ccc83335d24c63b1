from django.contrib import admin

from .models import ContentItem, Course, Module


class ModuleInline(admin.TabularInline):
    model = Module
    extra = 0


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "tenant", "category", "difficulty_level", "status")
    list_filter = ("status", "difficulty_level", "tenant")
    search_fields = ("title", "category")
    inlines = [ModuleInline]


@admin.register(ContentItem)
class ContentItemAdmin(admin.ModelAdmin):
    list_display = ("title", "module", "content_type", "is_published")
    list_filter = ("content_type", "is_published")
    search_fields = ("title", "module__course__title")
